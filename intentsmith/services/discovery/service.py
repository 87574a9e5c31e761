"""
Manifest discovery.

Walks a project or decompiled-APK tree and yields every AndroidManifest.xml
it can reach. Unreadable directories are skipped with a recorded warning.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator
from pathlib import Path

from ...core.config import DEFAULT_EXCLUDE_DIRS
from ...core.exceptions import RootNotFoundError
from ...core.logging import get_logger
from ...core.types import RunWarning, WarningScope

logger = get_logger(__name__)

MANIFEST_FILENAME = "AndroidManifest.xml"


class ManifestLocator:
    """Finds manifest files below a root directory.

    The sequence returned by :meth:`iter_manifests` is lazy and finite.
    Directory listing failures do not abort the walk; each one is appended to
    :attr:`warnings`.
    """

    def __init__(
        self,
        root: Path,
        exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
        filename: str = MANIFEST_FILENAME,
    ) -> None:
        self.root = Path(root)
        self.exclude_dirs = frozenset(exclude_dirs)
        self.filename = filename
        self.warnings: list[RunWarning] = []

    def iter_manifests(self) -> Iterator[Path]:
        """Validate the root and return a lazy iterator of manifest paths.

        Returns:
            Iterator[Path]: Manifest paths in sorted traversal order.

        Raises:
            RootNotFoundError: If the root is missing or not a directory.
        """
        if not self.root.exists():
            raise RootNotFoundError(message="path does not exist", path=str(self.root))
        if not self.root.is_dir():
            raise RootNotFoundError(message="path is not a directory", path=str(self.root))

        logger.info("Scanning for manifests", root=str(self.root))
        return self._walk()

    def _walk(self) -> Iterator[Path]:
        found = 0
        for dirpath, dirnames, filenames in os.walk(self.root, onerror=self._on_error):
            # Sorting in place fixes the traversal order os.walk follows
            dirnames[:] = sorted(d for d in dirnames if d not in self.exclude_dirs)
            if self.filename in filenames:
                found += 1
                yield Path(dirpath) / self.filename
        logger.info("Manifest scan finished", found=found, skipped=len(self.warnings))

    def _on_error(self, error: OSError) -> None:
        path = error.filename or str(self.root)
        logger.warning("Skipping unreadable path", path=path, error=error.strerror or str(error))
        self.warnings.append(
            RunWarning(
                scope=WarningScope.FILE,
                subject=str(path),
                message=f"skipped unreadable path: {error.strerror or error}",
                error_type=type(error).__name__,
            )
        )

    def __iter__(self) -> Iterator[Path]:
        return self.iter_manifests()
