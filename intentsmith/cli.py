"""
intentsmith CLI.

Command-line interface for scanning Android project trees and printing
device invocation commands for their reachable components.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .core.config import LLMConfig, RunConfig
from .core.exceptions import InferenceError, IntentsmithError
from .core.logging import setup_logging
from .models.command import ExtrasStatus
from .models.permission import ProtectionLevel
from .models.report import PipelineResult

app = typer.Typer(
    name="intentsmith",
    help="Find reachable Android components and synthesize adb commands for them",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)

PERMISSION_LEVEL_CHOICES = ("normal", "dangerous", "signature", "signatureOrSystem", "any")

_STATUS_STYLES = {
    ExtrasStatus.INFERRED: "green",
    ExtrasStatus.SOURCE_SCAN: "cyan",
    ExtrasStatus.UNKNOWN: "yellow",
}


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        from . import __version__
        console.print(f"intentsmith v{__version__}")
        raise typer.Exit()


def parse_permission_level(value: str) -> ProtectionLevel | None:
    """Map the ``--max-permission-level`` value; ``any`` means no constraint."""
    if value.lower() == "any":
        return None
    level = ProtectionLevel.parse(value)
    if level is ProtectionLevel.UNKNOWN:
        raise typer.BadParameter(f"expected one of: {', '.join(PERMISSION_LEVEL_CHOICES)}")
    return level


def resolve_model(choice: str, available: list[str]) -> str:
    """Pick a model by list index, exact id, or unique substring.

    A choice that matches nothing, or more than one model, is returned
    unchanged and left for the endpoint to accept or reject.

    Raises:
        typer.BadParameter: If a numeric index is out of range.
    """
    if choice.isdigit():
        index = int(choice)
        if 0 <= index < len(available):
            return available[index]
        raise typer.BadParameter(f"model index {index} out of range (0-{len(available) - 1})")
    if choice in available:
        return choice
    matches = [m for m in available if choice.lower() in m.lower()]
    return matches[0] if len(matches) == 1 else choice


def _fetch_models(llm: LLMConfig) -> list[str]:
    from .agents.base import list_models
    return asyncio.run(list_models(llm))


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """intentsmith: manifest analysis and adb command synthesis."""
    pass


@app.command()
def scan(
    root: Path = typer.Argument(
        ...,
        help="Directory containing AndroidManifest.xml files (searched recursively)",
        resolve_path=True,
    ),
    package: Optional[str] = typer.Option(None, "--package", "-p", help="Only this package"),
    max_permission_level: str = typer.Option(
        "signature",
        "--max-permission-level",
        "-l",
        help=f"Highest protection level kept: {', '.join(PERMISSION_LEVEL_CHOICES)}",
    ),
    alive_only: bool = typer.Option(
        False, "--alive-only", help="Only packages installed on the connected device"
    ),
    no_shared_userid: bool = typer.Option(
        False, "--no-shared-userid", help="Skip apps declaring android:sharedUserId"
    ),
    include_unexported: bool = typer.Option(
        False, "--include-unexported", help="Also report components other apps cannot reach"
    ),
    exclude_disabled: bool = typer.Option(
        False, "--exclude-disabled", help="Skip components declared android:enabled=\"false\""
    ),
    serial: Optional[str] = typer.Option(None, "--serial", "-s", help="adb device serial"),
    llm_url: Optional[str] = typer.Option(None, "--llm-url", help="Model endpoint, e.g. http://localhost:1234/v1"),
    llm_key: Optional[str] = typer.Option(None, "--llm-key", help="Model endpoint API key"),
    llm_model: Optional[str] = typer.Option(
        None, "--llm-model", help="Model id, list index, or unique substring (see `models`)"
    ),
    llm_provider: Optional[str] = typer.Option(None, "--llm-provider", help="openai or anthropic"),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", "-j", min=1, help="Parallel model requests"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Enrichment deadline in seconds"),
    source_scan: bool = typer.Option(
        False, "--source-scan", help="Read get*Extra keys from source when no model is configured"
    ),
    permission_table: Optional[Path] = typer.Option(
        None, "--permission-table", help="Known-permission table (JSON) replacing the bundled one"
    ),
    json_out: Optional[Path] = typer.Option(None, "--json", help="Write the report as JSON ('-' for stdout)"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR"),
    log_json: Optional[bool] = typer.Option(
        None, "--log-json/--log-console", help="Log format on stderr (default: console on a terminal)"
    ),
) -> None:
    """Scan a project tree and print one adb command per reachable component."""
    config = RunConfig.from_env(
        root,
        package_filter=package,
        max_permission_level=parse_permission_level(max_permission_level),
        alive_only=alive_only,
        exclude_shared_user_id=no_shared_userid,
        exported_only=not include_unexported,
        include_disabled=not exclude_disabled,
        run_timeout_seconds=timeout,
        source_scan=source_scan,
        permission_table=permission_table,
        log_level=log_level.upper() if log_level else None,
        llm={
            "base_url": llm_url,
            "api_key": llm_key,
            "model": llm_model,
            "provider": llm_provider,
            "concurrency": concurrency,
        },
        device={"serial": serial},
    )
    setup_logging(config.log_level, json_output=log_json)

    if config.llm.enabled:
        try:
            available = _fetch_models(config.llm)
        except InferenceError as e:
            err_console.print(f"[yellow]Could not list models, using '{config.llm.model}' as given: {e}[/yellow]")
        else:
            if available:
                model = resolve_model(config.llm.model or "", available)
                config = config.model_copy(update={"llm": config.llm.model_copy(update={"model": model})})

    async def run_async() -> PipelineResult:
        from .orchestration import run_pipeline

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=err_console,
            transient=True,
        ) as progress:
            task = progress.add_task("Scanning manifests...", total=None)
            result = await run_pipeline(config)
            progress.update(task, completed=True)
        return result

    try:
        result = asyncio.run(run_async())
    except IntentsmithError as e:
        err_console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(2)

    if json_out is not None:
        payload = result.model_dump_json(indent=2)
        if str(json_out) == "-":
            typer.echo(payload)
            return
        json_out.write_text(payload, encoding="utf-8")
        err_console.print(f"[dim]Report written to {json_out}[/dim]")

    print_report(result)


def print_report(result: PipelineResult) -> None:
    """Render a run: summary, per-component commands, warnings."""
    counts = result.counts
    summary = Table(title="Scan Results", show_header=False)
    summary.add_column("Metric", style="cyan")
    summary.add_column("Value", style="green")
    summary.add_row("Run ID", result.run_id)
    summary.add_row("Duration", f"{(result.completed_at - result.started_at).total_seconds():.1f}s")
    summary.add_row("Manifests", f"{counts.manifests_parsed}/{counts.manifests_found} parsed")
    summary.add_row("Components", f"{counts.components_kept} kept of {counts.components_discovered}")
    summary.add_row("Enriched", str(counts.components_enriched))
    summary.add_row("Warnings", str(len(result.all_warnings)))
    console.print(summary)

    if not result.reports:
        console.print("\n[yellow]No components matched the current filters.[/yellow]")

    for report in result.reports:
        component = report.component
        status_style = _STATUS_STYLES[report.extras_status]
        details = [escape(report.command.command)]
        if component.guarding_permission:
            details.append(f"[dim]permission: {escape(component.guarding_permission)}[/dim]")
        if report.shared_user_id:
            details.append(f"[dim]sharedUserId: {escape(report.shared_user_id)}[/dim]")
        if report.source_path:
            details.append(f"[dim]source: {escape(str(report.source_path))}[/dim]")
        console.print(Panel(
            "\n".join(details),
            title=f"[bold]{component.kind.value}[/bold] {escape(component.name)}",
            subtitle=f"[{status_style}]extras: {report.extras_status.value}[/{status_style}]",
            title_align="left",
            border_style="blue" if component.enabled else "dim",
        ))

    warnings = result.all_warnings
    if warnings:
        table = Table(title="Warnings")
        table.add_column("Scope", style="cyan")
        table.add_column("Subject")
        table.add_column("Message", style="yellow")
        for warning in warnings:
            table.add_row(warning.scope.value, escape(warning.subject), escape(warning.message))
        console.print(table)


@app.command()
def models(
    llm_url: Optional[str] = typer.Option(None, "--llm-url", help="Model endpoint"),
    llm_key: Optional[str] = typer.Option(None, "--llm-key", help="Model endpoint API key"),
    llm_provider: Optional[str] = typer.Option(None, "--llm-provider", help="openai or anthropic"),
) -> None:
    """List the models an endpoint offers, with the index `scan --llm-model` accepts."""
    config = RunConfig.from_env(
        Path.cwd(),
        llm={"base_url": llm_url, "api_key": llm_key, "provider": llm_provider},
    )
    setup_logging(config.log_level)
    if not config.llm.base_url:
        err_console.print("[red]No endpoint: pass --llm-url or set INTENTSMITH_LLM_URL[/red]")
        raise typer.Exit(2)

    try:
        available = _fetch_models(config.llm)
    except InferenceError as e:
        err_console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)

    table = Table(title=f"Models at {config.llm.base_url}")
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Model")
    for index, model in enumerate(available):
        table.add_row(str(index), model)
    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__
    console.print(f"intentsmith v{__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
