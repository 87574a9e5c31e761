"""
Main pipeline orchestration for intentsmith.

Runs the stages end to end on one event loop: discovery, bounded concurrent
parsing, policy filtering (package, shared user id, installed packages,
exported/enabled state, protection level), bounded concurrent enrichment
under an optional run deadline, and command synthesis. Output order is
fixed by (package, kind, class name), never by completion order.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from ..core.config import RunConfig
from ..core.exceptions import OracleUnavailableError
from ..core.logging import bind_context, clear_context, get_logger
from ..core.types import RunWarning, ServiceResult, WarningScope
from ..models.command import ExtraParameter, ExtrasStatus
from ..models.manifest import ComponentRecord, ManifestRecord
from ..models.report import ComponentReport, PipelineResult, RunCounts
from ..services.device import AdbPackageOracle, InstalledPackageOracle
from ..services.discovery import ManifestLocator
from ..services.inference import ParameterInference, ParameterInferenceClient
from ..services.manifest import ManifestParser
from ..services.permissions import PermissionClassifier
from ..services.source import SourceLocator, extract_intent_context, read_source, scan_extras
from ..services.synthesis import CommandSynthesizer

logger = get_logger(__name__)


@dataclass(frozen=True)
class Candidate:
    """A component that survived filtering, with its manifest."""

    manifest: ManifestRecord
    component: ComponentRecord


@dataclass(frozen=True)
class Enrichment:
    """Outcome of enriching one component."""

    extras: tuple[ExtraParameter, ...] = ()
    status: ExtrasStatus = ExtrasStatus.UNKNOWN
    source_path: Path | None = None
    warnings: tuple[RunWarning, ...] = ()


async def discover_manifests(config: RunConfig) -> tuple[list[Path], list[RunWarning]]:
    """Stage 1: find manifest files.

    Raises:
        RootNotFoundError: If the root is unusable.
    """
    locator = ManifestLocator(config.root_dir, exclude_dirs=config.exclude_dirs)
    paths = await asyncio.to_thread(lambda: list(locator.iter_manifests()))
    return paths, list(locator.warnings)


async def parse_manifests(paths: list[Path], workers: int) -> list[ServiceResult[ManifestRecord]]:
    """Stage 2: parse manifests on a bounded pool; results keep input order."""
    parser = ManifestParser()
    semaphore = asyncio.Semaphore(workers)

    async def parse_one(path: Path) -> ServiceResult[ManifestRecord]:
        async with semaphore:
            return await asyncio.to_thread(parser.load, path)

    return list(await asyncio.gather(*(parse_one(p) for p in paths)))


async def query_installed_packages(
    oracle: InstalledPackageOracle,
) -> tuple[set[str] | None, list[RunWarning]]:
    """Stage 3: one oracle call per run; unavailability disables the filter."""
    try:
        installed = await asyncio.to_thread(oracle.list_installed_packages)
    except OracleUnavailableError as e:
        logger.warning("Alive-only filter disabled", error=str(e))
        return None, [RunWarning.from_error(WarningScope.RUN, "alive-only", e)]
    return installed, []


def select_components(
    config: RunConfig,
    manifests: list[ManifestRecord],
    classifier: PermissionClassifier,
    installed: set[str] | None,
) -> list[Candidate]:
    """Stage 4: apply manifest-level then component-level policy."""
    candidates = []
    for manifest in manifests:
        if config.package_filter and manifest.package != config.package_filter:
            continue
        if config.exclude_shared_user_id and manifest.shared_user_id:
            logger.debug("Skipping shared-uid package", package=manifest.package)
            continue
        if installed is not None and manifest.package not in installed:
            logger.debug("Skipping package not installed", package=manifest.package)
            continue

        for component in manifest.components:
            if config.exported_only and not component.is_exported:
                continue
            if not config.include_disabled and not component.enabled:
                continue
            if not classifier.keep_component(component, config.max_permission_level):
                logger.debug(
                    "Component above permission threshold",
                    component=component.name,
                    permission=component.guarding_permission,
                    level=classifier.classify(component.guarding_permission or "").value,
                )
                continue
            candidates.append(Candidate(manifest=manifest, component=component))
    return candidates


class Enricher:
    """Stage 5: source lookup plus extras inference or scan for one component."""

    def __init__(
        self,
        config: RunConfig,
        source_locator: SourceLocator,
        inference: ParameterInference | None,
    ) -> None:
        self.config = config
        self.source_locator = source_locator
        self.inference = inference
        self.source_scan = config.source_scan and inference is None

    @property
    def active(self) -> bool:
        return self.inference is not None or self.source_scan

    async def enrich(self, candidate: Candidate) -> Enrichment:
        component = candidate.component
        # An alias has no class of its own; its target's source is what runs
        class_name = component.target_activity or component.name
        source_path = self.source_locator.find(class_name, candidate.manifest.path.parent)
        if source_path is None:
            logger.debug("No source for component", component=component.name)
            return Enrichment()

        try:
            source = await read_source(source_path)
        except OSError as e:
            logger.warning("Cannot read source", component=component.name, path=str(source_path), error=str(e))
            return Enrichment(
                source_path=source_path,
                warnings=(RunWarning.from_error(WarningScope.COMPONENT, component.name, e),),
            )

        scanned = scan_extras(source)
        if self.inference is None:
            return Enrichment(
                extras=tuple(scanned),
                status=ExtrasStatus.SOURCE_SCAN,
                source_path=source_path,
            )

        excerpt = extract_intent_context(source, max_chars=self.config.llm.max_source_chars)
        result = await self.inference.infer(
            component,
            component.primary_filter,
            excerpt,
            [extra.key for extra in scanned],
        )
        if not result.success:
            return Enrichment(source_path=source_path, warnings=tuple(result.warnings))
        return Enrichment(
            extras=tuple(result.data or ()),
            status=ExtrasStatus.INFERRED,
            source_path=source_path,
        )


async def enrich_components(
    candidates: list[Candidate],
    enricher: Enricher,
    concurrency: int,
    timeout: float | None,
) -> list[Enrichment]:
    """Run enrichment concurrently, bounded by ``concurrency``.

    Results are indexed by candidate position. Work still pending when the
    deadline passes is cancelled; those components keep empty extras and get
    a warning. Cancelling the caller cancels every in-flight request.
    """
    if not candidates:
        return []

    semaphore = asyncio.Semaphore(concurrency)

    async def enrich_one(candidate: Candidate) -> Enrichment:
        async with semaphore:
            return await enricher.enrich(candidate)

    tasks = [asyncio.create_task(enrich_one(c)) for c in candidates]
    try:
        _, pending = await asyncio.wait(tasks, timeout=timeout)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    if pending:
        logger.warning("Run deadline reached, cancelling enrichment", pending=len(pending), timeout=timeout)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    results = []
    for candidate, task in zip(candidates, tasks):
        if task in pending:
            results.append(Enrichment(warnings=(
                RunWarning(
                    scope=WarningScope.COMPONENT,
                    subject=candidate.component.name,
                    message=f"enrichment cancelled: run deadline of {timeout}s reached",
                    error_type="TimeoutError",
                ),
            )))
        else:
            results.append(task.result())
    return results


async def run_pipeline(
    config: RunConfig,
    *,
    oracle: InstalledPackageOracle | None = None,
    inference: ParameterInference | None = None,
    classifier: PermissionClassifier | None = None,
) -> PipelineResult:
    """Execute a complete scan.

    Args:
        config: Run configuration.
        oracle: Installed-package source; adb is used when None and
            ``alive_only`` is set.
        inference: Extras inference; a model client is built from
            ``config.llm`` when None and the endpoint is configured.
        classifier: Permission classifier; loaded from the configured (or
            bundled) table when None.

    Returns:
        PipelineResult: Ordered component reports with warnings and counts.

    Raises:
        RootNotFoundError: If the root directory is unusable.
        PermissionTableError: If the permission table cannot be loaded.
    """
    run_id = str(uuid.uuid4())[:8]
    started_at = datetime.now(timezone.utc)
    bind_context(run_id=run_id)
    try:
        logger.info(
            "Pipeline started",
            root=str(config.root_dir),
            package=config.package_filter,
            max_permission_level=config.max_permission_level.value if config.max_permission_level else None,
            alive_only=config.alive_only,
            inference=config.llm.enabled or inference is not None,
        )
        if classifier is None:
            classifier = PermissionClassifier.from_table(config.permission_table)
        warnings: list[RunWarning] = []
        counts = RunCounts()

        paths, discovery_warnings = await discover_manifests(config)
        warnings += discovery_warnings
        counts.manifests_found = len(paths)

        manifests = []
        for result in await parse_manifests(paths, config.parse_workers):
            warnings += result.warnings
            if result.success and result.data is not None:
                manifests.append(result.data)
        counts.manifests_parsed = len(manifests)
        counts.components_discovered = sum(len(m.components) for m in manifests)

        installed = None
        if config.alive_only:
            installed, oracle_warnings = await query_installed_packages(oracle or AdbPackageOracle(config.device))
            warnings += oracle_warnings

        classifier = classifier.with_declared(p for m in manifests for p in m.declared_permissions)
        candidates = select_components(config, manifests, classifier, installed)
        counts.components_kept = len(candidates)
        logger.info(
            "Components selected",
            manifests=counts.manifests_parsed,
            discovered=counts.components_discovered,
            kept=counts.components_kept,
        )

        if inference is None and config.llm.enabled:
            inference = ParameterInferenceClient(config.llm)
        source_locator = SourceLocator(config.root_dir, exclude_dirs=config.exclude_dirs)
        enricher = Enricher(config, source_locator, inference)

        if enricher.active and candidates:
            await asyncio.to_thread(source_locator.index)
            enrichments = await enrich_components(
                candidates, enricher, config.llm.concurrency, config.run_timeout_seconds
            )
        else:
            enrichments = [Enrichment() for _ in candidates]

        synthesizer = CommandSynthesizer(adb_path=config.device.adb_path, serial=config.device.serial)
        reports = [
            ComponentReport(
                component=candidate.component,
                shared_user_id=candidate.manifest.shared_user_id,
                command=synthesizer.synthesize(candidate.component, enrichment.extras),
                extras_status=enrichment.status,
                source_path=enrichment.source_path,
                warnings=list(enrichment.warnings),
            )
            for candidate, enrichment in zip(candidates, enrichments)
        ]
        reports.sort(key=lambda r: r.component.sort_key)
        counts.components_enriched = sum(1 for r in reports if r.extras_status is not ExtrasStatus.UNKNOWN)

        completed_at = datetime.now(timezone.utc)
        logger.info(
            "Pipeline completed",
            commands=len(reports),
            enriched=counts.components_enriched,
            warnings=len(warnings) + sum(len(r.warnings) for r in reports),
            duration_s=round((completed_at - started_at).total_seconds(), 2),
        )
        return PipelineResult(
            run_id=run_id,
            started_at=started_at,
            completed_at=completed_at,
            reports=reports,
            warnings=warnings,
            counts=counts,
        )
    finally:
        clear_context()
