"""Core infrastructure components for intentsmith."""

from .config import DeviceConfig, LLMConfig, RunConfig
from .exceptions import (
    InferenceError,
    InferenceNetworkError,
    InferenceSchemaError,
    IntentsmithError,
    MalformedManifestError,
    OracleUnavailableError,
    PermissionTableError,
    RootNotFoundError,
    SourceNotFoundError,
)
from .logging import bind_context, clear_context, get_logger, setup_logging
from .types import RunWarning, ServiceResult, WarningScope

__all__ = [
    "DeviceConfig",
    "LLMConfig",
    "RunConfig",
    "InferenceError",
    "InferenceNetworkError",
    "InferenceSchemaError",
    "IntentsmithError",
    "MalformedManifestError",
    "OracleUnavailableError",
    "PermissionTableError",
    "RootNotFoundError",
    "SourceNotFoundError",
    "bind_context",
    "clear_context",
    "get_logger",
    "setup_logging",
    "RunWarning",
    "ServiceResult",
    "WarningScope",
]
