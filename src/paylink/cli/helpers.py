"""Shared utilities for paylink CLI commands.

Holds the global CLI options (config file, log level and format), turns
them into a logging configuration once per invocation, and loads the
client configuration the commands work with.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console

from paylink.core.config import ClientConfig
from paylink.core.logging import configure_logging, get_logger

_logger = get_logger("cli")


class ErrorMessages:
    """Constants for CLI error messages."""

    CONFIG_LOAD_ERROR = "Error loading config"
    LOGGING_CONFIG_ERROR = "Logging configuration error"


# =============================================================================
# Global option state
# =============================================================================


@dataclass
class CliState:
    """Global CLI options shared by every command."""

    config_file: Path | None = None
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None
    log_format: Literal["json", "console"] = "console"
    logging_configured: bool = False


_state = CliState()


def set_config_file(path: Path | None) -> None:
    _state.config_file = path


def set_log_level(level: str) -> None:
    """Set the log level (DEBUG, INFO, WARNING, ERROR)."""
    _state.log_level = level.upper()  # type: ignore[assignment]


def set_log_format(fmt: str) -> None:
    """Set the log format (json, console)."""
    _state.log_format = fmt  # type: ignore[assignment]


def reset_cli_state() -> None:
    """Reset global options (primarily for testing)."""
    global _state
    _state = CliState()


# =============================================================================
# Config and logging
# =============================================================================


def load_client_config(console: Console) -> ClientConfig:
    """Load the client configuration selected by ``--config``.

    Falls back to built-in defaults when no file was given.

    Raises:
        typer.Exit: With code 2 if the file cannot be read or is invalid.
    """
    if _state.config_file is None:
        return ClientConfig()
    try:
        return ClientConfig.from_yaml(_state.config_file)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        console.print(f"[red]{ErrorMessages.CONFIG_LOAD_ERROR}:[/red] {e}")
        raise typer.Exit(2) from None


def configure_global_logging(console: Console, config: ClientConfig | None = None) -> None:
    """Configure logging from the global CLI options.

    ``--log-level`` wins over the config file's ``log_level``; with neither,
    only warnings and errors are logged. Only configures once per session.

    Raises:
        typer.Exit: If logging configuration fails.
    """
    if _state.logging_configured:
        return
    level = _state.log_level or (config.log_level if config is not None else "WARNING")
    try:
        configure_logging(level=level, format=_state.log_format)
    except (AttributeError, ValueError) as e:
        console.print(f"[red]{ErrorMessages.LOGGING_CONFIG_ERROR}:[/red] {e}")
        raise typer.Exit(1) from None
    _state.logging_configured = True
    _logger.debug("cli.logging_configured", level=level, format=_state.log_format)
