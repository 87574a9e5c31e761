"""Device interaction: installed-package oracle."""

from .service import AdbPackageOracle, InstalledPackageOracle, parse_package_list

__all__ = ["AdbPackageOracle", "InstalledPackageOracle", "parse_package_list"]
