"""
Permission data models.

Protection levels form a closed, totally ordered enumeration. Unknown sits at
the top so that a permission nobody could classify is treated as the most
restrictive one.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

_RANKS = {
    "normal": 0,
    "dangerous": 1,
    "signature": 2,
    "signatureOrSystem": 3,
    "unknown": 4,
}


class ProtectionLevel(str, Enum):
    """Android permission protection levels, least to most restrictive."""

    NORMAL = "normal"
    DANGEROUS = "dangerous"
    SIGNATURE = "signature"
    SIGNATURE_OR_SYSTEM = "signatureOrSystem"
    UNKNOWN = "unknown"

    @property
    def rank(self) -> int:
        """Position in the restrictiveness order (Normal=0 .. Unknown=4)."""
        return _RANKS[self.value]

    def allows(self, level: ProtectionLevel) -> bool:
        """Whether a component guarded by ``level`` passes this threshold."""
        return level.rank <= self.rank

    @classmethod
    def parse(cls, raw: str | None) -> ProtectionLevel:
        """Normalise a manifest ``protectionLevel`` string.

        Flags after ``|`` are ignored except ``privileged``, which promotes a
        signature permission to SignatureOrSystem. Hex-encoded values from
        decompiled binary manifests are decoded by their low base bits.

        Args:
            raw: Attribute value, e.g. ``"signature|privileged"``.

        Returns:
            ProtectionLevel: The normalised level, Unknown when unrecognised.
        """
        if not raw:
            return cls.UNKNOWN
        value = raw.strip()
        if value.lower().startswith("0x"):
            try:
                return _from_bits(int(value, 16))
            except ValueError:
                return cls.UNKNOWN

        parts = [p.strip() for p in value.split("|") if p.strip()]
        if not parts:
            return cls.UNKNOWN
        base, flags = parts[0], set(parts[1:])
        if base in ("signatureOrSystem", "signatureOrPrivileged"):
            return cls.SIGNATURE_OR_SYSTEM
        if base == "privileged" or (base == "signature" and "privileged" in flags):
            return cls.SIGNATURE_OR_SYSTEM
        if base == "signature":
            return cls.SIGNATURE
        if base == "dangerous":
            return cls.DANGEROUS
        if base == "normal":
            return cls.NORMAL
        return cls.UNKNOWN


def _from_bits(bits: int) -> ProtectionLevel:
    # PermissionInfo.PROTECTION_MASK_BASE is the low nibble; 0x10 is the privileged flag
    base = bits & 0xF
    if base == 0:
        return ProtectionLevel.NORMAL
    if base == 1:
        return ProtectionLevel.DANGEROUS
    if base == 2:
        return ProtectionLevel.SIGNATURE_OR_SYSTEM if bits & 0x10 else ProtectionLevel.SIGNATURE
    if base == 3:
        return ProtectionLevel.SIGNATURE_OR_SYSTEM
    return ProtectionLevel.UNKNOWN


class PermissionInfo(BaseModel):
    """A permission name together with its protection level."""

    model_config = {"frozen": True}

    name: str = Field(description="Full permission name (e.g., android.permission.CAMERA)")
    level: ProtectionLevel = Field(description="Protection level")

    @property
    def short_name(self) -> str:
        """Permission name without the ``android.permission.`` prefix."""
        return self.name.replace("android.permission.", "")
