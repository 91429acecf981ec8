"""Visibility-aware periodic task runner.

``PollingController`` re-runs a task on a fixed interval while the host is
visible. Hiding the host pauses the schedule (a run already in flight is
allowed to finish); showing it again triggers one immediate catch-up run,
after which the interval is measured from that run.

Task failures never stop the schedule. They are reported through the
``status`` snapshot and the ``on_status``/``on_error`` hooks, which drive a
connection indicator (connected, disconnected, reconnecting).

The controller keeps exactly one timer task and never starts a run while
another is in flight. Nothing is invoked after ``stop()``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from paylink.core.constants import DEFAULT_POLL_INTERVAL_SECONDS
from paylink.core.errors import ClassifiedError, ErrorClassifier
from paylink.core.logging import get_logger
from paylink.host.clock import Clock, SystemClock
from paylink.host.visibility import AlwaysVisible, VisibilitySource

_logger = get_logger("polling")

PollTask = Callable[[], Awaitable[Any]]


class ConnectionStatus(str, Enum):
    """Connection indicator derived from recent poll outcomes."""

    CONNECTED = "connected"
    """The last run succeeded (or nothing has failed yet)."""

    DISCONNECTED = "disconnected"
    """The last run failed."""

    RECONNECTING = "reconnecting"
    """A run is in flight after a failure."""


@dataclass(frozen=True)
class PollingStatus:
    """Snapshot of a controller's schedule and recent outcomes."""

    active: bool = False
    interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    host_visible: bool = True
    connection: ConnectionStatus = ConnectionStatus.CONNECTED
    run_count: int = 0
    consecutive_failures: int = 0
    last_run_at: float | None = None
    last_error: ClassifiedError | None = None

    @property
    def healthy(self) -> bool:
        return self.consecutive_failures == 0

    @property
    def paused(self) -> bool:
        """Started but waiting for the host to become visible."""
        return self.active and not self.host_visible

    def to_dict(self) -> dict[str, Any]:
        return {
            "active": self.active,
            "interval_seconds": self.interval_seconds,
            "host_visible": self.host_visible,
            "connection": self.connection.value,
            "run_count": self.run_count,
            "consecutive_failures": self.consecutive_failures,
            "last_run_at": self.last_run_at,
            "last_error": self.last_error.to_dict() if self.last_error else None,
        }


class PollingController:
    """Runs one task periodically, pausing while the host is hidden.

    Example usage:
        visibility = VisibilityState()
        poller = PollingController(visibility=visibility, name="dashboard")
        poller.start(refresh_dashboard, interval_seconds=30.0)
        ...
        visibility.hide()   # schedule paused
        visibility.show()   # immediate refresh, then every 30s
        await poller.aclose()

    Args:
        clock: Clock driving the interval timer.
        visibility: Host visibility signal.
        classifier: Builds ``last_error`` from task failures.
        name: Name used in log entries.
        on_status: Called with every new ``PollingStatus``.
        on_error: Called with each task failure.
    """

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        visibility: VisibilitySource | None = None,
        classifier: ErrorClassifier | None = None,
        name: str = "poller",
        on_status: Callable[[PollingStatus], None] | None = None,
        on_error: Callable[[BaseException], None] | None = None,
    ) -> None:
        self._clock = clock or SystemClock()
        self._visibility = visibility or AlwaysVisible()
        self._classifier = classifier or ErrorClassifier()
        self._name = name
        self._on_status = on_status
        self._on_error = on_error

        self._task: PollTask | None = None
        self._interval = DEFAULT_POLL_INTERVAL_SECONDS
        self._active = False
        self._timer: asyncio.Task[None] | None = None
        self._run_task: asyncio.Task[None] | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._status = PollingStatus()

    @property
    def status(self) -> PollingStatus:
        return self._status

    @property
    def active(self) -> bool:
        return self._active

    @property
    def interval_seconds(self) -> float:
        return self._interval

    def start(
        self,
        task: PollTask,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        *,
        immediate: bool = False,
    ) -> None:
        """Begin polling. Calling it again while active does nothing.

        Must be called with a running event loop.

        Args:
            task: Zero-argument callable returning an awaitable.
            interval_seconds: Time between the end of one run and the next.
            immediate: Run once right away instead of after one interval.

        Raises:
            ValueError: If ``interval_seconds`` is not positive.
        """
        if self._active:
            _logger.debug("polling.already_started", poller=self._name)
            return
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        asyncio.get_running_loop()

        self._task = task
        self._interval = interval_seconds
        self._active = True
        self._unsubscribe = self._visibility.subscribe(self._on_visibility_change)
        self._set_status(
            active=True,
            interval_seconds=interval_seconds,
            host_visible=self._visibility.visible,
        )
        _logger.info(
            "polling.started",
            poller=self._name,
            interval_seconds=interval_seconds,
            immediate=immediate,
            visible=self._visibility.visible,
        )

        if not self._visibility.visible:
            return
        if immediate:
            self._launch_run()
        else:
            self._schedule(interval_seconds)

    def stop(self) -> None:
        """Stop polling. Safe to call repeatedly and before ``start``."""
        if not self._active:
            return
        self._active = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._cancel_timer()
        run, self._run_task = self._run_task, None
        if run is not None and not run.done():
            run.cancel()
        self._set_status(active=False)
        _logger.info("polling.stopped", poller=self._name, run_count=self._status.run_count)

    async def aclose(self) -> None:
        """Stop polling and wait for the timer and any run to unwind."""
        pending = [t for t in (self._timer, self._run_task) if t is not None]
        self.stop()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # ─── Scheduling ─────────────────────────────────────────────────

    def _cancel_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None and not timer.done():
            timer.cancel()

    def _schedule(self, delay: float) -> None:
        self._cancel_timer()
        self._timer = asyncio.ensure_future(self._fire_after(delay))

    async def _fire_after(self, delay: float) -> None:
        await self._clock.sleep(delay)
        self._timer = None
        self._launch_run()

    def _launch_run(self) -> None:
        if not self._active or self._task is None:
            return
        if self._run_task is not None and not self._run_task.done():
            _logger.debug("polling.run_skipped", poller=self._name, reason="in_flight")
            return
        self._run_task = asyncio.ensure_future(self._run_once(self._task))

    def _on_visibility_change(self, visible: bool) -> None:
        if not self._active:
            return
        self._cancel_timer()
        self._set_status(host_visible=visible)
        if visible:
            _logger.debug("polling.resumed", poller=self._name)
            self._launch_run()
        else:
            _logger.debug("polling.paused", poller=self._name)

    # ─── Runs ───────────────────────────────────────────────────────

    async def _run_once(self, task: PollTask) -> None:
        if self._status.consecutive_failures:
            self._set_status(connection=ConnectionStatus.RECONNECTING)
        try:
            await task()
        except Exception as exc:
            classified = self._classifier.classify_error(exc)
            self._set_status(
                connection=ConnectionStatus.DISCONNECTED,
                run_count=self._status.run_count + 1,
                consecutive_failures=self._status.consecutive_failures + 1,
                last_run_at=self._clock.now(),
                last_error=classified,
            )
            _logger.warning(
                "polling.run_failed",
                poller=self._name,
                category=classified.category.value,
                consecutive_failures=self._status.consecutive_failures,
                error=classified.message,
            )
            if self._on_error is not None:
                try:
                    self._on_error(exc)
                except Exception:
                    _logger.exception("polling.error_hook_failed", poller=self._name)
        else:
            self._set_status(
                connection=ConnectionStatus.CONNECTED,
                run_count=self._status.run_count + 1,
                consecutive_failures=0,
                last_run_at=self._clock.now(),
                last_error=None,
            )
        finally:
            if self._run_task is asyncio.current_task():
                self._run_task = None

        if self._active and self._visibility.visible:
            self._schedule(self._interval)

    def _set_status(self, **changes: Any) -> None:
        self._status = replace(self._status, **changes)
        if self._on_status is not None:
            try:
                self._on_status(self._status)
            except Exception:
                _logger.exception("polling.status_hook_failed", poller=self._name)
