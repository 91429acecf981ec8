"""Rich output formatting for the paylink CLI.

Centralizes colors and table builders so every command renders categories,
severities and connection states the same way.
"""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from paylink.core.errors import ClassifiedError, UISeverity
from paylink.execution.polling import ConnectionStatus, PollingStatus
from paylink.utils.time import format_duration

# =============================================================================
# Shared console instance
# =============================================================================

console = Console()


# =============================================================================
# Color schemes
# =============================================================================


class StatusColors:
    """Color mappings for the status values shown by the CLI."""

    SEVERITY: dict[UISeverity, str] = {
        UISeverity.NETWORK: "yellow",
        UISeverity.WARNING: "magenta",
        UISeverity.ERROR: "red",
    }

    CONNECTION: dict[ConnectionStatus, str] = {
        ConnectionStatus.CONNECTED: "green",
        ConnectionStatus.DISCONNECTED: "red",
        ConnectionStatus.RECONNECTING: "yellow",
    }

    @classmethod
    def get_severity_color(cls, severity: UISeverity) -> str:
        return cls.SEVERITY.get(severity, "white")

    @classmethod
    def get_connection_color(cls, connection: ConnectionStatus) -> str:
        return cls.CONNECTION.get(connection, "white")


# =============================================================================
# Formatters
# =============================================================================


def format_retryable(retryable: bool) -> str:
    return "[green]✓ yes[/green]" if retryable else "[dim]✗ no[/dim]"


def format_connection(connection: ConnectionStatus) -> str:
    color = StatusColors.get_connection_color(connection)
    return f"[{color}]● {connection.value}[/{color}]"


def format_retry_notice(attempt: int, max_retries: int, delay: float, message: str) -> str:
    """One-line notice printed before an automatic retry."""
    return (
        f"[yellow]↻ {message}[/yellow] "
        f"[dim](attempt {attempt}/{max_retries}, next in {format_duration(delay)})[/dim]"
    )


# =============================================================================
# Table builders
# =============================================================================


def create_classification_table(classified: ClassifiedError) -> Table:
    """Render a classified failure as a two-column table."""
    table = Table(title="Error classification", show_header=False)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value")

    color = StatusColors.get_severity_color(classified.severity)
    table.add_row("Category", f"[bold]{classified.category.value}[/bold]")
    table.add_row("Message", classified.message)
    table.add_row("Severity", f"[{color}]{classified.severity.value}[/{color}]")
    table.add_row("Retryable", format_retryable(classified.retryable))
    if classified.status_code is not None:
        table.add_row("Status", str(classified.status_code))
    for field_name, field_message in classified.field_errors.items():
        table.add_row(f"Field: {field_name}", str(field_message))
    return table


def format_polling_line(status: PollingStatus) -> str:
    """Status line printed after every poll run."""
    line = f"{format_connection(status.connection)} [dim]run #{status.run_count}[/dim]"
    if status.last_error is not None:
        line += f" [red]{status.last_error.message}[/red]"
        line += f" [dim](failures: {status.consecutive_failures})[/dim]"
    return line
