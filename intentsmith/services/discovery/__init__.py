"""Manifest discovery service."""

from .service import MANIFEST_FILENAME, ManifestLocator

__all__ = ["MANIFEST_FILENAME", "ManifestLocator"]
