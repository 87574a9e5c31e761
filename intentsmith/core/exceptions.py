"""
Custom exception hierarchy for intentsmith.

All exceptions inherit from IntentsmithError so callers can handle the whole
family in one place. Only RootNotFoundError and PermissionTableError abort a
run; every other error is attributable to a single file or component and is
recovered by the pipeline into a warning.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class IntentsmithError(Exception):
    """Base exception for all intentsmith errors."""

    message: str
    context: dict[str, Any] = field(default_factory=dict)
    cause: Exception | None = None

    def __str__(self) -> str:
        ctx = f" | context: {self.context}" if self.context else ""
        cause = f" | caused by: {self.cause}" if self.cause else ""
        return f"{self.message}{ctx}{cause}"


@dataclass
class RootNotFoundError(IntentsmithError):
    """Raised when the scan root does not exist or is not a directory."""

    path: str = ""

    def __str__(self) -> str:
        return f"Scan root not usable '{self.path}': {self.message}"


@dataclass
class MalformedManifestError(IntentsmithError):
    """Raised when a manifest cannot be parsed into a ManifestRecord."""

    path: str = ""
    line: int | None = None
    column: int | None = None

    def __str__(self) -> str:
        position = ""
        if self.line is not None:
            position = f":{self.line}"
            if self.column is not None:
                position += f":{self.column}"
        return f"Malformed manifest {self.path}{position}: {self.message}"


@dataclass
class PermissionTableError(IntentsmithError):
    """Raised when the known-permission table cannot be loaded."""

    path: str = ""


@dataclass
class OracleUnavailableError(IntentsmithError):
    """Raised when the installed-package list cannot be obtained from the device."""

    command: str = ""

    def __str__(self) -> str:
        base = super().__str__()
        return f"Package oracle unavailable ({self.command}): {base}" if self.command else base


@dataclass
class InferenceError(IntentsmithError):
    """Base class for parameter inference failures."""

    component: str = ""
    retryable: bool = False

    def __str__(self) -> str:
        base = super().__str__()
        return f"[inference: {self.component}] {base}" if self.component else base


@dataclass
class InferenceNetworkError(InferenceError):
    """Raised when the model endpoint cannot be reached or fails transiently."""

    retryable: bool = True


@dataclass
class InferenceSchemaError(InferenceError):
    """Raised when the model reply does not contain a conforming extras payload."""

    raw_reply: str = ""


@dataclass
class SourceNotFoundError(IntentsmithError):
    """Signals that no source file exists for a component.

    Not a failure: enrichment is simply skipped for that component.
    """

    class_name: str = ""
