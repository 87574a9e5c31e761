"""
Report models produced at the end of a pipeline run.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field

from ..core.types import RunWarning
from .command import ExtrasStatus, SynthesizedCommand
from .manifest import ComponentRecord


class ComponentReport(BaseModel):
    """Everything the report shows for one component."""

    component: ComponentRecord
    shared_user_id: str | None = Field(default=None)
    command: SynthesizedCommand
    extras_status: ExtrasStatus = Field(default=ExtrasStatus.UNKNOWN)
    source_path: Path | None = Field(default=None)
    warnings: list[RunWarning] = Field(default_factory=list)


class RunCounts(BaseModel):
    """Funnel counts for a run."""

    manifests_found: int = 0
    manifests_parsed: int = 0
    components_discovered: int = 0
    components_kept: int = 0
    components_enriched: int = 0


class PipelineResult(BaseModel):
    """Result of a complete pipeline run."""

    run_id: str
    started_at: datetime
    completed_at: datetime
    reports: list[ComponentReport] = Field(default_factory=list)
    warnings: list[RunWarning] = Field(default_factory=list)
    counts: RunCounts = Field(default_factory=RunCounts)

    @property
    def commands(self) -> list[SynthesizedCommand]:
        return [r.command for r in self.reports]

    @property
    def all_warnings(self) -> list[RunWarning]:
        """Run/file warnings followed by component warnings in report order."""
        collected = list(self.warnings)
        for report in self.reports:
            collected.extend(report.warnings)
        return collected
