"""paylink CLI.

Command-line front end for the resilience layer, built with Typer:

    paylink classify --status 503          # how would this failure be shown?
    paylink fetch /employees               # single-flight GET with auto-retry
    paylink watch /dashboard/stats -i 30   # visibility-aware polling

Package structure:
    cli/
    ├── __init__.py     # This file - app assembly and global options
    ├── helpers.py      # Global option state, config and logging setup
    ├── output.py       # Rich formatting
    └── commands/
        ├── classify.py
        ├── fetch.py
        └── watch.py
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from paylink import __version__

from .commands import classify, fetch, watch
from .helpers import set_config_file, set_log_format, set_log_level
from .output import console

# =============================================================================
# Typer app definition
# =============================================================================

app = typer.Typer(
    name="paylink",
    help="Resilient HTTP client tooling for the payroll backend",
    add_completion=False,
)


# =============================================================================
# Global option callbacks
# =============================================================================


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"paylink v{__version__}")
        raise typer.Exit()


def config_callback(value: Path | None) -> Path | None:
    if value:
        set_config_file(value)
    return value


def log_level_callback(value: str | None) -> str | None:
    """Set log level from CLI option."""
    if value:
        set_log_level(value)
    return value


def log_format_callback(value: str | None) -> str | None:
    """Set log format from CLI option."""
    if value:
        set_log_format(value)
    return value


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            callback=config_callback,
            exists=True,
            dir_okay=False,
            readable=True,
            help="YAML client configuration file",
            envvar="PAYLINK_CONFIG",
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            "-L",
            callback=log_level_callback,
            help="Logging level (DEBUG, INFO, WARNING, ERROR)",
            envvar="PAYLINK_LOG_LEVEL",
        ),
    ] = None,
    log_format: Annotated[
        str | None,
        typer.Option(
            "--log-format",
            callback=log_format_callback,
            help="Log format: json or console",
            envvar="PAYLINK_LOG_FORMAT",
        ),
    ] = None,
) -> None:
    """paylink - resilient HTTP client tooling for the payroll backend."""


# =============================================================================
# Command registration
# =============================================================================

app.command()(classify)
app.command()(fetch)
app.command()(watch)


__all__ = ["app"]
