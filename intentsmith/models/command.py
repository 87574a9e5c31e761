"""
Command data models.

An ExtraParameter is a proposed intent extra; a SynthesizedCommand is the
immutable description of one device invocation built from a component and
its extras. The textual command line is derived from the structure, never
the other way round.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from .manifest import ComponentKind


class ExtraType(str, Enum):
    """Intent extra value types understood by ``am``."""

    STRING = "string"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    BOOL = "bool"
    URI = "uri"
    COMPONENT = "component"
    STRING_ARRAY = "string[]"
    INT_ARRAY = "int[]"
    LONG_ARRAY = "long[]"
    FLOAT_ARRAY = "float[]"

    @property
    def flag(self) -> str:
        """The ``am`` flag carrying a value of this type."""
        return _FLAGS[self]

    @classmethod
    def from_label(cls, label: str) -> ExtraType:
        """Map a free-form type label (``Integer``, ``boolean``, ``String[]``...).

        Unrecognised labels map to STRING.
        """
        key = label.strip().lower().replace(" ", "")
        key = key.removeprefix("java.lang.").removeprefix("kotlin.")
        return _ALIASES.get(key, cls.STRING)


_FLAGS = {
    ExtraType.STRING: "--es",
    ExtraType.INT: "--ei",
    ExtraType.LONG: "--el",
    ExtraType.FLOAT: "--ef",
    ExtraType.DOUBLE: "--ed",
    ExtraType.BOOL: "--ez",
    ExtraType.URI: "--eu",
    ExtraType.COMPONENT: "--ecn",
    ExtraType.STRING_ARRAY: "--esa",
    ExtraType.INT_ARRAY: "--eia",
    ExtraType.LONG_ARRAY: "--ela",
    ExtraType.FLOAT_ARRAY: "--efa",
}

_ALIASES = {
    "string": ExtraType.STRING,
    "str": ExtraType.STRING,
    "charsequence": ExtraType.STRING,
    "int": ExtraType.INT,
    "integer": ExtraType.INT,
    "short": ExtraType.INT,
    "byte": ExtraType.INT,
    "char": ExtraType.INT,
    "long": ExtraType.LONG,
    "float": ExtraType.FLOAT,
    "double": ExtraType.DOUBLE,
    "bool": ExtraType.BOOL,
    "boolean": ExtraType.BOOL,
    "uri": ExtraType.URI,
    "android.net.uri": ExtraType.URI,
    "url": ExtraType.URI,
    "component": ExtraType.COMPONENT,
    "componentname": ExtraType.COMPONENT,
    "string[]": ExtraType.STRING_ARRAY,
    "stringarray": ExtraType.STRING_ARRAY,
    "arraylist<string>": ExtraType.STRING_ARRAY,
    "int[]": ExtraType.INT_ARRAY,
    "intarray": ExtraType.INT_ARRAY,
    "integer[]": ExtraType.INT_ARRAY,
    "arraylist<integer>": ExtraType.INT_ARRAY,
    "long[]": ExtraType.LONG_ARRAY,
    "longarray": ExtraType.LONG_ARRAY,
    "float[]": ExtraType.FLOAT_ARRAY,
    "floatarray": ExtraType.FLOAT_ARRAY,
}


class ExtraSource(str, Enum):
    """Where a proposed extra came from."""

    LLM_INFERRED = "llm-inferred"
    SOURCE_SCAN = "source-scan"
    DEFAULT_HEURISTIC = "default-heuristic"


class ExtrasStatus(str, Enum):
    """Report marker for how a component's extras were obtained."""

    INFERRED = "inferred"
    SOURCE_SCAN = "source-scan"
    UNKNOWN = "unknown"


class ExtraParameter(BaseModel):
    """A proposed intent extra."""

    model_config = {"frozen": True}

    key: str = Field(min_length=1)
    type: ExtraType = Field(default=ExtraType.STRING)
    example: str = Field(default="")
    source: ExtraSource = Field(default=ExtraSource.LLM_INFERRED)


class InvocationVerb(str, Enum):
    """How a component is exercised on the device."""

    START_ACTIVITY = "start-activity"
    START_SERVICE = "start-service"
    SEND_BROADCAST = "send-broadcast"
    QUERY_PROVIDER = "query-provider"

    @classmethod
    def for_kind(cls, kind: ComponentKind) -> InvocationVerb:
        return _VERBS[kind]


_VERBS = {
    ComponentKind.ACTIVITY: InvocationVerb.START_ACTIVITY,
    ComponentKind.SERVICE: InvocationVerb.START_SERVICE,
    ComponentKind.RECEIVER: InvocationVerb.SEND_BROADCAST,
    ComponentKind.PROVIDER: InvocationVerb.QUERY_PROVIDER,
}


class SynthesizedCommand(BaseModel):
    """One device invocation for one component."""

    model_config = {"frozen": True}

    component: str = Field(description="Fully qualified class name of the target")
    package: str = Field(description="Package owning the component")
    verb: InvocationVerb
    target: str = Field(description="package/fully.qualified.Class")
    action: str | None = Field(default=None)
    categories: tuple[str, ...] = Field(default_factory=tuple)
    data_uri: str | None = Field(default=None)
    mime_type: str | None = Field(default=None)
    provider_uri: str | None = Field(default=None)
    extras: tuple[ExtraParameter, ...] = Field(default_factory=tuple)
    argv: tuple[str, ...] = Field(default_factory=tuple, description="Device-side argv")
    command: str = Field(default="", description="Shell-escaped command line")
