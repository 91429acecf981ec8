"""Watch command for the paylink CLI.

Polls a resource with a ``PollingController`` and prints the connection
status after every run. On platforms with user signals the process can be
"hidden" and "shown" like a backgrounded UI:

    kill -USR1 <pid>   # pause polling
    kill -USR2 <pid>   # refresh immediately, then resume the interval
"""

from __future__ import annotations

import asyncio
import signal

import typer

from paylink.core.config import ClientConfig
from paylink.execution.polling import PollingController, PollingStatus
from paylink.host.visibility import VisibilityState
from paylink.transport import HttpxTransport

from ..helpers import configure_global_logging, load_client_config
from ..output import console, format_polling_line

_VISIBILITY_SIGNALS = (("SIGUSR1", False), ("SIGUSR2", True))


def install_visibility_signals(
    loop: asyncio.AbstractEventLoop, visibility: VisibilityState
) -> list[int]:
    """Map SIGUSR1/SIGUSR2 to hide/show where the platform supports it.

    Returns:
        The signal numbers that were installed.
    """
    installed: list[int] = []
    for name, visible in _VISIBILITY_SIGNALS:
        signum = getattr(signal, name, None)
        if signum is None:
            continue
        try:
            loop.add_signal_handler(signum, visibility.set_visible, visible)
        except (NotImplementedError, RuntimeError, ValueError):
            continue
        installed.append(signum)
    return installed


def watch(
    url: str = typer.Argument(..., help="Path relative to the configured base URL"),
    interval: float | None = typer.Option(
        None,
        "--interval",
        "-i",
        min=0.001,
        help="Seconds between polls (default from config)",
    ),
    count: int | None = typer.Option(
        None,
        "--count",
        "-n",
        min=1,
        help="Stop after this many runs",
    ),
    immediate: bool | None = typer.Option(
        None,
        "--immediate/--no-immediate",
        help="Poll once right away (default from config)",
    ),
    token: str | None = typer.Option(
        None,
        "--token",
        envvar="PAYLINK_TOKEN",
        help="Bearer token sent with every request",
    ),
) -> None:
    """Poll a resource and report the connection status.

    Failed polls are reported and polling continues. Stop with Ctrl+C or
    --count.
    """
    config = load_client_config(console)
    configure_global_logging(console, config)

    if immediate is None:
        immediate = config.polling.run_immediately

    try:
        asyncio.run(
            _watch(config, url, interval or config.polling.interval_seconds, immediate, count, token)
        )
    except KeyboardInterrupt:
        console.print("[dim]Stopped.[/dim]")


async def _watch(
    config: ClientConfig,
    url: str,
    interval: float,
    immediate: bool,
    count: int | None,
    token: str | None,
) -> None:
    loop = asyncio.get_running_loop()
    visibility = VisibilityState()
    installed = install_visibility_signals(loop, visibility)
    finished = asyncio.Event()
    last_reported = 0

    def report(status: PollingStatus) -> None:
        nonlocal last_reported
        if status.run_count == last_reported:
            return
        last_reported = status.run_count
        console.print(format_polling_line(status))
        if count is not None and status.run_count >= count:
            finished.set()

    async with HttpxTransport(config.transport, token_provider=lambda: token) as transport:

        async def poll() -> None:
            await transport.get(url)

        poller = PollingController(visibility=visibility, name="cli.watch", on_status=report)
        poller.start(poll, interval, immediate=immediate)
        try:
            await finished.wait()
        finally:
            await poller.aclose()
            for signum in installed:
                loop.remove_signal_handler(signum)
