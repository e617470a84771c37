"""
Check commands for running site audits.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Run site checks",
    no_args_is_help=True,
)


def _load_config(config_path: Optional[Path], overrides: dict[str, Any]):
    """Load configuration and set up logging; exit 2 when invalid."""
    from sitecheck.core.config.loader import ConfigError, load_app_config
    from sitecheck.core.logging import setup_logging

    try:
        config = load_app_config(config_path, overrides=overrides)
    except ConfigError as e:
        err_console.print(f"[red]Error loading config:[/red] {escape(str(e))}")
        if e.details:
            err_console.print(f"[dim]{escape(e.details)}[/dim]")
        raise typer.Exit(2)

    setup_logging(
        level=config.logging.level,
        log_file=config.logging.file,
        json_format=config.logging.json_format,
        rich_console=config.logging.rich_console,
    )
    return config


def _cli_overrides(
    checker: Optional[str] = None,
    log_level: Optional[str] = None,
    report: Optional[Path] = None,
) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if checker:
        overrides["checker"] = checker
    if log_level:
        overrides["logging"] = {"level": log_level}
    if report:
        overrides["report_file"] = str(report)
    return overrides


@app.command("run")
def run_check(
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to sitecheck.yaml",
    ),
    checker: Optional[str] = typer.Option(
        None,
        "--checker",
        help="Checker to run: friend or theme",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Compute labels without writing them back",
    ),
    report: Optional[Path] = typer.Option(
        None,
        "--report",
        "-r",
        help="Write a JSON run report to this file",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log level (DEBUG, INFO, WARNING, ERROR)",
    ),
) -> None:
    """Check every open issue's site and reconcile its labels.

    Exits 1 if any site could not be processed, 2 on bad configuration.

    Examples:
        sitecheck check run
        sitecheck check run --checker theme --dry-run
        sitecheck check run -c sitecheck.yaml --report reports/run.json
    """
    from sitecheck.core.orchestrator import run_site_check
    from sitecheck.tracker.base import TrackerError

    config = _load_config(config_path, _cli_overrides(checker, log_level, report))

    if dry_run:
        console.print("[yellow]Dry run mode - labels will not be written[/yellow]")

    try:
        stats = asyncio.run(run_site_check(config, dry_run=dry_run))
    except TrackerError as e:
        err_console.print(f"[red]Error fetching issues:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    _show_summary(stats)

    if not stats.ok:
        raise typer.Exit(1)


@app.command("url")
def check_url(
    url: str = typer.Argument(..., help="Site URL to check"),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to sitecheck.yaml",
    ),
    checker: Optional[str] = typer.Option(
        None,
        "--checker",
        help="Checker to run: friend or theme",
    ),
    labels: Optional[str] = typer.Option(
        None,
        "--labels",
        help="Comma-separated current labels, to preview reconciliation",
    ),
) -> None:
    """Check a single site without touching the tracker.

    Examples:
        sitecheck check url https://example.com
        sitecheck check url https://blog.example.com --checker theme --labels "v1.2.0,status:500"
    """
    from sitecheck.core.check import CheckTarget
    from sitecheck.core.labels import reconcile_labels

    config = _load_config(config_path, _cli_overrides(checker))
    current = tuple(label.strip() for label in (labels or "").split(",") if label.strip())
    target = CheckTarget(id="cli", url=url, labels=current)

    result = asyncio.run(_check_single(config, target))
    next_labels = reconcile_labels(result, current, config.labels, config.checker)

    table = Table(title=f"Check Result ({config.checker.value})", show_header=True, header_style="bold magenta")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("URL", escape(url))
    table.add_row("Status", str(result.status_code) if result.status_code is not None else "-")
    table.add_row("Reachable", "[green]yes[/green]" if result.reachable else "[red]no[/red]")
    table.add_row("Valid", "[green]yes[/green]" if result.valid else "[red]no[/red]")
    table.add_row("Theme", result.theme_name or "-")
    table.add_row("Version", result.theme_version or "-")
    table.add_row("Attempts", str(result.attempts))
    if result.error:
        table.add_row("Error", f"[red]{escape(result.error)}[/red]")
    table.add_row("Labels", escape(", ".join(next_labels)) or "[dim](none)[/dim]")
    console.print(table)


async def _check_single(config, target):
    from sitecheck.core.backends import HttpBackend
    from sitecheck.core.check import SiteChecker

    async with HttpBackend(timeout=config.politeness.request_timeout_seconds) as backend:
        checker = SiteChecker.from_config(config, backend)
        return await checker.check(target)


def _show_summary(stats) -> None:
    """Display run summary table."""
    table = Table(title="Check Summary", show_header=True, header_style="bold magenta")
    table.add_column("Targets", justify="right")
    table.add_column("Checked", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Reachable", justify="right", style="green")
    table.add_column("Valid", justify="right", style="green")
    table.add_column("Updated", justify="right")
    table.add_column("Errors", justify="right", style="red")
    table.add_column("Duration", justify="right")

    duration = f"{stats.duration_seconds:.1f}s" if stats.duration_seconds is not None else "-"
    table.add_row(
        str(stats.targets),
        str(stats.checked),
        str(stats.skipped),
        str(stats.reachable),
        str(stats.valid),
        str(stats.updated),
        str(stats.errors_count),
        duration,
    )

    console.print()
    console.print(table)

    if stats.errors:
        console.print()
        console.print("[bold red]Errors:[/bold red]")
        for error in stats.errors:
            console.print(f"  [dim]#{error.target_id}[/dim] {escape(str(error.url))}: {escape(error.message)}")
