"""Source location and Intent-context extraction."""

from .service import (
    SOURCE_EXTENSIONS,
    SourceLocator,
    extract_intent_context,
    read_source,
    scan_extras,
)

__all__ = [
    "SOURCE_EXTENSIONS",
    "SourceLocator",
    "extract_intent_context",
    "read_source",
    "scan_extras",
]
