"""
Permission Classifier Service.

Maps permission names to protection levels using an updatable table (the
bundled ``data/permissions.json`` or a user-supplied file), optionally
overlaid with custom permissions declared by the scanned manifests, and
decides whether a component passes the configured protection threshold.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from importlib import resources
from pathlib import Path
from types import MappingProxyType

from pydantic import BaseModel, Field, ValidationError, field_validator

from ...core.exceptions import PermissionTableError
from ...core.logging import get_logger
from ...models.manifest import ComponentRecord
from ...models.permission import PermissionInfo, ProtectionLevel

logger = get_logger(__name__)


class PermissionTable(BaseModel):
    """On-disk format of the known-permission table."""

    version: str = Field(default="unversioned")
    permissions: dict[str, ProtectionLevel] = Field(default_factory=dict)

    @field_validator("permissions", mode="before")
    @classmethod
    def _normalise_levels(cls, value: object) -> object:
        # Accept raw manifest spellings such as "signature|privileged"
        if isinstance(value, dict):
            return {name: ProtectionLevel.parse(str(level)) for name, level in value.items()}
        return value


def load_permission_table(path: Path | None = None) -> PermissionTable:
    """Load the known-permission table.

    Args:
        path: Override file; the bundled table is used when None.

    Returns:
        PermissionTable: The validated table.

    Raises:
        PermissionTableError: If the file cannot be read or does not validate.
    """
    source = str(path) if path else "intentsmith/data/permissions.json"
    try:
        if path is None:
            raw = (resources.files("intentsmith") / "data" / "permissions.json").read_text("utf-8")
        else:
            raw = Path(path).read_text("utf-8")
        table = PermissionTable.model_validate(json.loads(raw))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise PermissionTableError(
            message=f"Cannot load permission table: {e}",
            path=source,
            cause=e,
        ) from e

    logger.debug("Loaded permission table", source=source, version=table.version, entries=len(table.permissions))
    return table


class PermissionClassifier:
    """Classifies permissions and applies the protection-level policy."""

    def __init__(self, levels: Mapping[str, ProtectionLevel]) -> None:
        self._levels = MappingProxyType(dict(levels))

    @classmethod
    def from_table(cls, path: Path | None = None) -> PermissionClassifier:
        return cls(load_permission_table(path).permissions)

    def with_declared(self, declared: Iterable[PermissionInfo]) -> PermissionClassifier:
        """Return a classifier that also knows manifest-declared permissions.

        Table entries win over declarations, so an app cannot downgrade a
        platform permission by redeclaring it.
        """
        levels = dict(self._levels)
        for permission in declared:
            levels.setdefault(permission.name, permission.level)
        return PermissionClassifier(levels)

    def classify(self, name: str) -> ProtectionLevel:
        """Protection level of ``name``; Unknown when the name is not in the table."""
        return self._levels.get(name, ProtectionLevel.UNKNOWN)

    def keep(self, permission: str | None, max_level: ProtectionLevel | None) -> bool:
        """Policy decision for one permission name.

        Args:
            permission: The guarding permission, or None when unguarded.
            max_level: Highest acceptable level; None means no constraint.

        Returns:
            bool: True when the component should be kept.
        """
        if permission is None or max_level is None:
            return True
        return max_level.allows(self.classify(permission))

    def keep_component(self, component: ComponentRecord, max_level: ProtectionLevel | None) -> bool:
        return self.keep(component.guarding_permission, max_level)

    def __len__(self) -> int:
        return len(self._levels)

    def __contains__(self, name: object) -> bool:
        return name in self._levels
