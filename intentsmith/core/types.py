"""
Core type definitions for intentsmith.

Provides the result wrapper returned by per-file stages and the warning
record every recovered failure is converted into.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class WarningScope(str, Enum):
    """What a recorded warning is attached to."""

    RUN = "run"
    FILE = "file"
    COMPONENT = "component"


class RunWarning(BaseModel):
    """A recovered, non-fatal problem surfaced in the final report."""

    model_config = {"frozen": True}

    scope: WarningScope
    subject: str = Field(description="File path, component name, or run id")
    message: str
    error_type: str | None = Field(default=None, description="Exception class name")

    @classmethod
    def from_error(cls, scope: WarningScope, subject: str, error: Exception) -> RunWarning:
        return cls(
            scope=scope,
            subject=subject,
            message=str(error),
            error_type=type(error).__name__,
        )


@dataclass
class ServiceResult(Generic[T]):
    """Result wrapper for service operations.

    Provides a consistent return type that includes success/failure status,
    the result data, and any errors or warnings.
    """

    success: bool
    data: T | None = None
    error: str | None = None
    warnings: list[RunWarning] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    duration_ms: float = 0.0

    @classmethod
    def ok(cls, data: T, **metadata: Any) -> ServiceResult[T]:
        """Create a successful result."""
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def fail(cls, error: str, warnings: list[RunWarning] | None = None, **metadata: Any) -> ServiceResult[T]:
        """Create a failed result."""
        return cls(success=False, error=error, warnings=warnings or [], metadata=metadata)
