"""Services package for intentsmith."""

from .device import AdbPackageOracle, InstalledPackageOracle
from .discovery import ManifestLocator
from .inference import ParameterInference, ParameterInferenceClient
from .manifest import ManifestParser
from .permissions import PermissionClassifier
from .source import SourceLocator
from .synthesis import CommandSynthesizer

__all__ = [
    "AdbPackageOracle",
    "InstalledPackageOracle",
    "ManifestLocator",
    "ParameterInference",
    "ParameterInferenceClient",
    "ManifestParser",
    "PermissionClassifier",
    "SourceLocator",
    "CommandSynthesizer",
]
