"""
sitecheck CLI - Main entry point.

Audits the sites listed in open tracker issues and keeps each
issue's labels in step with what the site actually serves.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.traceback import install as install_rich_traceback

from sitecheck import __app_name__, __version__

# Load environment variables from .env (if present)
load_dotenv()

# Install rich traceback for better error display
install_rich_traceback(show_locals=False, width=120)

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name=__app_name__,
    help="Check issue-tracked sites and reconcile their labels",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """sitecheck - Site reachability and theme label auditor."""
    pass


# =============================================================================
# Import and register subcommand modules
# =============================================================================

from .commands import check  # noqa: E402

app.add_typer(check.app, name="check", help="Run site checks")


# =============================================================================
# Config Command
# =============================================================================


@app.command()
def config(
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to sitecheck.yaml",
    ),
) -> None:
    """Validate configuration and print the effective settings.

    Secrets are masked.
    """
    from sitecheck.core.config.loader import ConfigError, load_app_config
    from sitecheck.core.logging import json_dumps

    try:
        app_config = load_app_config(config_path)
    except ConfigError as e:
        err_console.print(f"[red]Invalid configuration:[/red] {escape(str(e))}")
        if e.details:
            err_console.print(f"[dim]{escape(e.details)}[/dim]")
        raise typer.Exit(2)

    data = app_config.model_dump(mode="json")
    if data["github"].get("token"):
        data["github"]["token"] = "***"
    console.print_json(json_dumps(data))


# =============================================================================
# Entry Point
# =============================================================================


def run() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    run()
