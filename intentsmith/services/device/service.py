"""
Installed-package oracle.

The pipeline only needs one question answered by the device: which packages
are installed right now. The adb-backed implementation asks the on-device
package manager; any failure surfaces as OracleUnavailableError and the
pipeline degrades to treating every package as alive.
"""

from __future__ import annotations

import shutil
import subprocess
from typing import Protocol, runtime_checkable

from ...core.config import DeviceConfig
from ...core.exceptions import OracleUnavailableError
from ...core.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class InstalledPackageOracle(Protocol):
    """Source of the set of package names installed on a device."""

    def list_installed_packages(self) -> set[str]:
        ...


def parse_package_list(output: str) -> set[str]:
    """Parse ``pm list packages`` output (``package:<name>`` per line)."""
    packages = set()
    for line in output.splitlines():
        line = line.strip()
        if line.startswith("package:"):
            name = line[len("package:"):].strip()
            if name:
                packages.add(name)
    return packages


class AdbPackageOracle:
    """Queries ``adb shell pm list packages`` on the configured device."""

    def __init__(self, config: DeviceConfig | None = None) -> None:
        self.config = config or DeviceConfig()

    def adb_prefix(self) -> list[str]:
        prefix = [self.config.adb_path]
        if self.config.serial:
            prefix += ["-s", self.config.serial]
        return prefix

    def list_installed_packages(self) -> set[str]:
        """Return installed package names.

        Raises:
            OracleUnavailableError: If adb is missing, times out, or fails.
        """
        cmd = self.adb_prefix() + ["shell", "pm", "list", "packages"]
        cmd_str = " ".join(cmd)

        if shutil.which(self.config.adb_path) is None:
            raise OracleUnavailableError(
                message=f"adb executable not found: {self.config.adb_path}",
                command=cmd_str,
            )

        logger.info("Listing installed packages", command=cmd_str)
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.config.timeout_seconds,
            )
        except subprocess.TimeoutExpired as e:
            raise OracleUnavailableError(
                message=f"timed out after {self.config.timeout_seconds}s",
                command=cmd_str,
                cause=e,
            ) from e
        except OSError as e:
            raise OracleUnavailableError(message=str(e), command=cmd_str, cause=e) from e

        if result.returncode != 0:
            raise OracleUnavailableError(
                message=(result.stderr or result.stdout).strip()[:500] or f"exit status {result.returncode}",
                command=cmd_str,
                context={"returncode": result.returncode},
            )

        packages = parse_package_list(result.stdout)
        logger.info("Installed packages listed", count=len(packages))
        return packages
