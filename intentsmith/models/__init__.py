"""Data models for intentsmith."""

from .command import (
    ExtraParameter,
    ExtraSource,
    ExtrasStatus,
    ExtraType,
    InvocationVerb,
    SynthesizedCommand,
)
from .manifest import (
    ComponentKind,
    ComponentRecord,
    DataSpec,
    ExportedState,
    IntentFilter,
    ManifestRecord,
    qualify_class_name,
)
from .permission import PermissionInfo, ProtectionLevel
from .report import ComponentReport, PipelineResult, RunCounts

__all__ = [
    "ExtraParameter",
    "ExtraSource",
    "ExtrasStatus",
    "ExtraType",
    "InvocationVerb",
    "SynthesizedCommand",
    "ComponentKind",
    "ComponentRecord",
    "DataSpec",
    "ExportedState",
    "IntentFilter",
    "ManifestRecord",
    "qualify_class_name",
    "PermissionInfo",
    "ProtectionLevel",
    "ComponentReport",
    "PipelineResult",
    "RunCounts",
]
