"""
Configuration management for intentsmith.

A run is described by one immutable RunConfig value that the CLI builds and
every pipeline stage receives explicitly. Environment variables (and a .env
file) provide defaults for the model endpoint and logging.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, SecretStr

from ..models.permission import ProtectionLevel

DEFAULT_EXCLUDE_DIRS = (".git", ".gradle", ".idea", "build", "test", "androidTest")


class LLMConfig(BaseModel):
    """Language-model endpoint configuration."""

    model_config = {"frozen": True}

    provider: Literal["openai", "anthropic"] = Field(
        default="openai", description="Wire protocol of the endpoint"
    )
    base_url: str | None = Field(
        default=None, description="Chat-completion endpoint, e.g. http://localhost:1234/v1"
    )
    api_key: SecretStr | None = Field(default=None, description="Bearer key, optional for local servers")
    model: str | None = Field(default=None, description="Model identifier")
    temperature: float = Field(default=0.2, ge=0.0, le=2.0, description="Sampling temperature")
    max_tokens: int = Field(default=2048, ge=128, description="Max output tokens")
    max_retries: int = Field(default=3, ge=1, description="Attempts on transient network failure")
    request_timeout_seconds: float = Field(default=60.0, gt=0, description="Per-request timeout")
    concurrency: int = Field(default=4, ge=1, description="Concurrent enrichment requests")
    max_source_chars: int = Field(default=8000, ge=500, description="Maximum source excerpt length")

    @property
    def enabled(self) -> bool:
        """Inference runs only when both an endpoint and a model are set."""
        return bool(self.base_url and self.model)


class DeviceConfig(BaseModel):
    """Debug-bridge (adb) configuration."""

    model_config = {"frozen": True}

    adb_path: str = Field(default="adb", description="adb executable")
    serial: str | None = Field(default=None, description="Target device serial (adb -s)")
    timeout_seconds: float = Field(default=15.0, gt=0, description="Package listing timeout")


class RunConfig(BaseModel):
    """Root configuration for one pipeline run."""

    model_config = {"frozen": True, "extra": "ignore"}

    root_dir: Path = Field(description="Directory searched for manifests")
    package_filter: str | None = Field(default=None, description="Only this package")
    max_permission_level: ProtectionLevel | None = Field(
        default=None, description="Highest protection level kept; None keeps everything"
    )
    alive_only: bool = Field(default=False, description="Only packages installed on the device")
    exclude_shared_user_id: bool = Field(default=False, description="Drop sharedUserId apps")
    exported_only: bool = Field(default=True, description="Only externally reachable components")
    include_disabled: bool = Field(default=True, description="Keep android:enabled=false components")
    exclude_dirs: tuple[str, ...] = Field(default=DEFAULT_EXCLUDE_DIRS)
    parse_workers: int = Field(default=4, ge=1, description="Concurrent manifest parses")
    run_timeout_seconds: float | None = Field(default=None, gt=0, description="Enrichment deadline")
    source_scan: bool = Field(default=False, description="Scan source for get*Extra keys")
    permission_table: Path | None = Field(default=None, description="Known-permission table override")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    llm: LLMConfig = Field(default_factory=LLMConfig)
    device: DeviceConfig = Field(default_factory=DeviceConfig)

    @classmethod
    def from_env(cls, root_dir: Path, **overrides: Any) -> RunConfig:
        """Create a configuration from environment variables plus explicit overrides.

        Explicit ``overrides`` win over the environment. ``llm`` and ``device``
        overrides may be partial dicts; they are merged onto the env values.

        Args:
            root_dir: Directory to scan.
            **overrides: Field values supplied by the caller (usually the CLI).

        Returns:
            RunConfig: The frozen configuration.
        """
        load_dotenv()

        api_key = os.environ.get("INTENTSMITH_LLM_KEY") or os.environ.get("OPENAI_API_KEY")
        llm_values: dict[str, Any] = {
            "provider": os.environ.get("INTENTSMITH_LLM_PROVIDER", "openai"),
            "base_url": os.environ.get("INTENTSMITH_LLM_URL") or None,
            "model": os.environ.get("INTENTSMITH_LLM_MODEL") or None,
            "api_key": SecretStr(api_key) if api_key else None,
        }
        llm_values.update({k: v for k, v in overrides.pop("llm", {}).items() if v is not None})
        if isinstance(llm_values.get("api_key"), str):
            llm_values["api_key"] = SecretStr(llm_values["api_key"])

        device_values: dict[str, Any] = {
            "serial": os.environ.get("ANDROID_SERIAL") or None,
        }
        device_values.update({k: v for k, v in overrides.pop("device", {}).items() if v is not None})

        values: dict[str, Any] = {
            "log_level": os.environ.get("INTENTSMITH_LOG_LEVEL", "INFO").upper(),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})

        return cls(
            root_dir=root_dir,
            llm=LLMConfig(**llm_values),
            device=DeviceConfig(**device_values),
            **values,
        )
