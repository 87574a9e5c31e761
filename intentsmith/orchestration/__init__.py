"""Pipeline orchestration."""

from .pipeline import run_pipeline

__all__ = ["run_pipeline"]
