"""Manifest parsing service."""

from .markup import MarkupDocument, MarkupNode, parse_markup
from .service import COMPONENT_TAGS, ManifestParser

__all__ = ["MarkupDocument", "MarkupNode", "parse_markup", "COMPONENT_TAGS", "ManifestParser"]
