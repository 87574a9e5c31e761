"""
Manifest data models.

These models describe what a single AndroidManifest.xml declares: the
package identity and the application components with their intent filters.
All records are frozen once the parser has produced them.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from .permission import PermissionInfo

_KIND_ORDER = ("activity", "service", "receiver", "provider")


class ComponentKind(str, Enum):
    """The four kinds of Android application components."""

    ACTIVITY = "activity"
    SERVICE = "service"
    RECEIVER = "receiver"
    PROVIDER = "provider"

    @property
    def order(self) -> int:
        """Sort position used for deterministic report ordering."""
        return _KIND_ORDER.index(self.value)


class ExportedState(str, Enum):
    """Tri-state value of the ``android:exported`` attribute."""

    TRUE = "true"
    FALSE = "false"
    UNSPECIFIED = "unspecified"

    @classmethod
    def from_attribute(cls, raw: str | None) -> ExportedState:
        """Read the attribute; unresolvable resource references count as absent."""
        value = (raw or "").strip().lower()
        if value == "true":
            return cls.TRUE
        if value == "false":
            return cls.FALSE
        return cls.UNSPECIFIED


class DataSpec(BaseModel):
    """A single ``<data>`` element of an intent filter."""

    model_config = {"frozen": True}

    scheme: str | None = None
    host: str | None = None
    port: str | None = None
    path: str | None = None
    path_prefix: str | None = None
    path_pattern: str | None = None
    mime_type: str | None = None

    def to_uri(self) -> str | None:
        """Render a representative URI, or None when no scheme is declared."""
        if not self.scheme:
            return None
        uri = f"{self.scheme}://"
        if self.host:
            uri += self.host
            if self.port:
                uri += f":{self.port}"
        path = self.path or self.path_prefix
        if path:
            uri += path if path.startswith("/") else f"/{path}"
        return uri


class IntentFilter(BaseModel):
    """An ``<intent-filter>`` with its children in document order."""

    model_config = {"frozen": True}

    actions: tuple[str, ...] = Field(default_factory=tuple)
    categories: tuple[str, ...] = Field(default_factory=tuple)
    data: tuple[DataSpec, ...] = Field(default_factory=tuple)
    line: int = Field(default=0, description="Line of the <intent-filter> start tag")

    @property
    def has_action(self) -> bool:
        return bool(self.actions)

    @property
    def first_uri(self) -> str | None:
        for spec in self.data:
            uri = spec.to_uri()
            if uri:
                return uri
        return None

    @property
    def first_mime_type(self) -> str | None:
        for spec in self.data:
            if spec.mime_type:
                return spec.mime_type
        return None


class ComponentRecord(BaseModel):
    """A declared activity, service, receiver or provider."""

    model_config = {"frozen": True}

    kind: ComponentKind
    name: str = Field(description="Fully qualified class name")
    package: str = Field(description="Package of the declaring manifest")
    exported: ExportedState = Field(default=ExportedState.UNSPECIFIED)
    permission: str | None = Field(default=None)
    read_permission: str | None = Field(default=None)
    write_permission: str | None = Field(default=None)
    enabled: bool = Field(default=True)
    line: int = Field(default=0, description="Declaration line in the manifest")
    intent_filters: tuple[IntentFilter, ...] = Field(default_factory=tuple)
    authorities: tuple[str, ...] = Field(default_factory=tuple)
    target_activity: str | None = Field(default=None, description="Set for activity-alias")
    manifest_path: Path = Field(default=Path())
    declaration: str = Field(default="", description="Compact rendering of the opening tag")

    @property
    def is_exported(self) -> bool:
        """Effective exported value.

        An explicit attribute always wins. Without one, a component is
        reachable from other apps exactly when it declares an intent filter.
        """
        if self.exported is ExportedState.TRUE:
            return True
        if self.exported is ExportedState.FALSE:
            return False
        return len(self.intent_filters) > 0

    @property
    def guarding_permission(self) -> str | None:
        """Permission a caller needs; providers fall back to readPermission."""
        if self.permission:
            return self.permission
        if self.kind is ComponentKind.PROVIDER:
            return self.read_permission
        return None

    @property
    def primary_filter(self) -> IntentFilter | None:
        """First intent filter declaring an action, else the first filter."""
        for intent_filter in self.intent_filters:
            if intent_filter.has_action:
                return intent_filter
        return self.intent_filters[0] if self.intent_filters else None

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]

    @property
    def sort_key(self) -> tuple[str, int, str]:
        return (self.package, self.kind.order, self.name)


class ManifestRecord(BaseModel):
    """Parsed AndroidManifest.xml."""

    model_config = {"frozen": True}

    package: str = Field(description="Application package name")
    shared_user_id: str | None = Field(default=None)
    path: Path = Field(description="Manifest file path")
    components: tuple[ComponentRecord, ...] = Field(default_factory=tuple)
    declared_permissions: tuple[PermissionInfo, ...] = Field(default_factory=tuple)


def qualify_class_name(name: str, package: str) -> str:
    """Expand the leading-dot shorthand against the package name.

    ``.MainActivity`` under ``com.example.app`` becomes
    ``com.example.app.MainActivity``. A bare name without any dot is also
    resolved relative to the package, matching how the platform reads it.
    """
    name = name.strip()
    if name.startswith("."):
        return f"{package}{name}"
    if "." not in name and package:
        return f"{package}.{name}"
    return name
