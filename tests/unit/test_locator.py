"""Unit tests for manifest discovery."""

import os
from pathlib import Path

import pytest

from intentsmith.core.exceptions import RootNotFoundError
from intentsmith.core.types import WarningScope
from intentsmith.services.discovery import ManifestLocator


class TestManifestLocator:
    """Tests for recursive manifest discovery."""

    def test_finds_manifests_in_sorted_order(self, project_tree):
        """Test discovery order and exclusions.

        Verifies that manifests are returned in deterministic traversal
        order and that build output directories are skipped.
        """
        paths = list(ManifestLocator(project_tree).iter_manifests())
        relative = [p.relative_to(project_tree).as_posix() for p in paths]
        assert relative == [
            "app/src/main/AndroidManifest.xml",
            "broken/AndroidManifest.xml",
            "tool/src/main/AndroidManifest.xml",
        ]

    def test_custom_exclusions(self, project_tree):
        paths = list(ManifestLocator(project_tree, exclude_dirs=("broken", "tool")).iter_manifests())
        relative = [p.relative_to(project_tree).as_posix() for p in paths]
        assert "broken/AndroidManifest.xml" not in relative
        assert "app/build/intermediates/merged_manifest/AndroidManifest.xml" in relative

    def test_iteration_is_lazy(self, project_tree):
        iterator = ManifestLocator(project_tree).iter_manifests()
        first = next(iterator)
        assert first.name == "AndroidManifest.xml"

    def test_empty_root(self, temp_dir):
        assert list(ManifestLocator(temp_dir)) == []

    def test_missing_root_raises(self, temp_dir):
        """Test that a missing root is reported before iteration starts."""
        locator = ManifestLocator(temp_dir / "nope")
        with pytest.raises(RootNotFoundError) as exc_info:
            locator.iter_manifests()
        assert exc_info.value.path == str(temp_dir / "nope")

    def test_file_root_raises(self, temp_dir):
        path = temp_dir / "file.txt"
        path.write_text("x")
        with pytest.raises(RootNotFoundError, match="not a directory"):
            ManifestLocator(path).iter_manifests()

    def test_unreadable_directory_is_skipped(self, project_tree, monkeypatch):
        """Test that a listing failure is recorded and the walk continues.

        The ``broken`` directory is reported as unreadable; its manifest is
        not yielded, one file-scoped warning is recorded, and the sibling
        manifests are still found.
        """
        real_walk = os.walk

        def walk_with_denied(top, onerror=None, **kwargs):
            for dirpath, dirnames, filenames in real_walk(top, onerror=onerror, **kwargs):
                if Path(dirpath).name == "broken":
                    onerror(PermissionError(13, "Permission denied", dirpath))
                    dirnames[:] = []
                    continue
                yield dirpath, dirnames, filenames

        monkeypatch.setattr(os, "walk", walk_with_denied)
        locator = ManifestLocator(project_tree)
        relative = [p.relative_to(project_tree).as_posix() for p in locator.iter_manifests()]

        assert relative == [
            "app/src/main/AndroidManifest.xml",
            "tool/src/main/AndroidManifest.xml",
        ]
        (warning,) = locator.warnings
        assert warning.scope is WarningScope.FILE
        assert warning.subject == str(project_tree / "broken")
        assert warning.error_type == "PermissionError"

    @pytest.mark.skipif(os.name != "posix" or os.geteuid() == 0, reason="needs unprivileged POSIX permissions")
    def test_permission_denied_directory(self, project_tree):
        locked = project_tree / "locked"
        (locked / "inner").mkdir(parents=True)
        (locked / "inner" / "AndroidManifest.xml").write_text("<manifest package='l'/>")
        locked.chmod(0)
        try:
            locator = ManifestLocator(project_tree)
            relative = [p.relative_to(project_tree).as_posix() for p in locator.iter_manifests()]
        finally:
            locked.chmod(0o755)

        assert "tool/src/main/AndroidManifest.xml" in relative
        assert not any(r.startswith("locked/") for r in relative)
        assert [w.subject for w in locator.warnings] == [str(locked)]
