"""Fetch command for the paylink CLI.

Performs one GET through a ``RequestLifecycleManager`` so the command shows
exactly what an application would: retry notices while retrying, then
either the response body or the classified error message.
"""

from __future__ import annotations

import asyncio
import json

import typer

from paylink.core.config import ClientConfig
from paylink.core.errors import PaylinkError
from paylink.execution.lifecycle import RequestLifecycleManager, RequestOptions
from paylink.transport import HttpxTransport

from ..helpers import configure_global_logging, load_client_config
from ..output import StatusColors, console, format_retry_notice


def fetch(
    url: str = typer.Argument(..., help="Path relative to the configured base URL"),
    retries: int | None = typer.Option(
        None,
        "--retries",
        "-r",
        min=0,
        help="Maximum automatic retries (default from config)",
    ),
    no_retry: bool = typer.Option(
        False,
        "--no-retry",
        help="Fail on the first error instead of retrying",
    ),
    token: str | None = typer.Option(
        None,
        "--token",
        envvar="PAYLINK_TOKEN",
        help="Bearer token sent with the request",
    ),
) -> None:
    """Fetch a resource with automatic retry on transient failures.

    Exit codes:
      0: Success
      1: Request failed
    """
    config = load_client_config(console)
    configure_global_logging(console, config)

    exit_code = asyncio.run(_fetch(config, url, retries, not no_retry, token))
    if exit_code:
        raise typer.Exit(exit_code)


async def _fetch(
    config: ClientConfig,
    url: str,
    retries: int | None,
    auto_retry: bool,
    token: str | None,
) -> int:
    def on_unauthorized(request_url: str) -> None:
        console.print(f"[red]Unauthorized:[/red] {request_url} (check --token)")

    async with HttpxTransport(
        config.transport,
        token_provider=lambda: token,
        on_unauthorized=on_unauthorized,
    ) as transport:
        manager = RequestLifecycleManager(config.retry, transport=transport, name="cli.fetch")

        def notify(attempt: int, max_retries: int, delay: float, error: BaseException) -> None:
            console.print(
                format_retry_notice(attempt, max_retries, delay, manager.state.retry_message)
            )

        options = RequestOptions(auto_retry=auto_retry, retries=retries, on_retry=notify)
        try:
            body = await manager.get(url, options)
        except PaylinkError:
            state = manager.state
            color = "red"
            if state.error_severity is not None:
                color = StatusColors.get_severity_color(state.error_severity)
            category = state.error_category.value if state.error_category else "unknown"
            console.print(f"[{color}]✗ {state.error}[/{color}] [dim]({category})[/dim]")
            return 1

    if isinstance(body, str):
        typer.echo(body)
    else:
        typer.echo(json.dumps(body, indent=2))
    return 0
