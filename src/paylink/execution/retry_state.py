"""User-visible retry state machine.

Drives a retry indicator: whether a retry is available, a per-second
countdown to the next attempt, and when the retry budget is spent.

    IDLE ──report_error──▶ READY ──retry()──▶ RETRYING ──success──▶ IDLE
                             ▲                    │
                             └──failure, budget───┤
                                                  └──failure, spent──▶ EXHAUSTED

``EXHAUSTED`` only leaves through ``reset()``. The countdown shown while
``RETRYING`` and the delay actually awaited come from the same backoff
computation, so the indicator never disagrees with the real wait.
"""

from __future__ import annotations

import asyncio
import math
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any

from paylink.core.config import RetryConfig
from paylink.core.constants import (
    COUNTDOWN_TICK_SECONDS,
    DEFAULT_BASE_DELAY_SECONDS,
    DEFAULT_MAX_DELAY_SECONDS,
    DEFAULT_MAX_RETRIES,
)
from paylink.core.errors import is_retryable_error, message
from paylink.core.logging import get_logger
from paylink.execution.backoff import BackoffPolicy
from paylink.host.clock import Clock, SystemClock
from paylink.utils.time import format_duration, utc_now

_logger = get_logger("retry_state")

RetryOperation = Callable[[int], Awaitable[Any]]
"""``operation(attempt_number)``; raising means the attempt failed."""


class RetryStatus(str, Enum):
    """Phase of the retry indicator."""

    IDLE = "idle"
    """No failure to recover from."""

    READY = "ready"
    """A retryable failure occurred and budget remains."""

    RETRYING = "retrying"
    """Waiting out the backoff delay or running the attempt."""

    EXHAUSTED = "exhausted"
    """The retry budget is spent; only ``reset()`` leaves this state."""


@dataclass(frozen=True)
class RetryAttempt:
    """One entry of the retry history."""

    attempt_number: int
    delay_seconds: float
    timestamp: datetime
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "attempt_number": self.attempt_number,
            "delay_seconds": self.delay_seconds,
            "timestamp": self.timestamp.isoformat(),
            "error": self.error,
        }


@dataclass(frozen=True)
class RetryState:
    """Snapshot read by the retry indicator.

    Attributes:
        status: Current phase.
        retry_count: Retries started since the last success or reset.
        max_retries: Retry budget.
        next_retry_at: Clock time of the pending attempt, while waiting.
        countdown: Whole seconds left before the pending attempt.
        last_error: Message of the failure being recovered from.
    """

    status: RetryStatus = RetryStatus.IDLE
    retry_count: int = 0
    max_retries: int = DEFAULT_MAX_RETRIES
    next_retry_at: float | None = None
    countdown: int = 0
    last_error: str | None = None

    @property
    def can_retry(self) -> bool:
        return self.status is RetryStatus.READY

    @property
    def exhausted(self) -> bool:
        return self.status is RetryStatus.EXHAUSTED

    @property
    def countdown_label(self) -> str:
        return format_duration(self.countdown)


class RetryStateMachine:
    """Retry indicator driving (or mirroring) retries of one operation.

    Used in two ways:

    * Driving: ``report_error()`` after a failure, then ``retry()`` (manual)
      or ``auto_retry=True`` to run attempts with backoff until success or
      exhaustion. ``operation`` is called with the attempt number.
    * Mirroring: pass ``observe_retry`` as the ``on_retry`` hook of a
      ``RetryExecutor`` and close the cycle with ``record_success()`` or
      ``record_failure()``; the executor's own delays are displayed.

    Args:
        operation: Called for each driven retry attempt.
        max_retries: Retry budget.
        base_delay: First backoff delay in seconds.
        max_delay: Backoff cap in seconds.
        auto_retry: Start attempts automatically once ``READY``.
        clock: Clock for delays and the countdown.
        rng: Random source for backoff jitter.
        on_change: Called with every new ``RetryState``.
        name: Name used in log entries.
    """

    def __init__(
        self,
        operation: RetryOperation | None = None,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
        max_delay: float = DEFAULT_MAX_DELAY_SECONDS,
        auto_retry: bool = False,
        clock: Clock | None = None,
        rng: random.Random | None = None,
        on_change: Callable[[RetryState], None] | None = None,
        name: str = "retry",
    ) -> None:
        self._operation = operation
        self._policy = BackoffPolicy(base_delay=base_delay, max_delay=max_delay, rng=rng)
        self._auto_retry = auto_retry
        self._clock = clock or SystemClock()
        self._on_change = on_change
        self._name = name

        self._state = RetryState(max_retries=max(0, max_retries))
        self._history: list[RetryAttempt] = []
        self._retry_task: asyncio.Task[bool] | None = None
        self._auto_task: asyncio.Task[None] | None = None
        self._ticker: asyncio.Task[None] | None = None

    @classmethod
    def from_config(
        cls,
        config: RetryConfig,
        operation: RetryOperation | None = None,
        **kwargs: Any,
    ) -> RetryStateMachine:
        return cls(
            operation,
            max_retries=config.max_retries,
            base_delay=config.base_delay_seconds,
            max_delay=config.max_delay_seconds,
            auto_retry=config.auto_retry,
            **kwargs,
        )

    @property
    def state(self) -> RetryState:
        return self._state

    @property
    def status(self) -> RetryStatus:
        return self._state.status

    @property
    def history(self) -> tuple[RetryAttempt, ...]:
        return tuple(self._history)

    def _set(self, **changes: Any) -> None:
        previous = self._state.status
        self._state = replace(self._state, **changes)
        if self._state.status is not previous:
            _logger.debug(
                "retry_state.transition",
                machine=self._name,
                from_status=previous.value,
                to_status=self._state.status.value,
                retry_count=self._state.retry_count,
            )
        if self._on_change is not None:
            self._on_change(self._state)

    def _after_failure_status(self) -> RetryStatus:
        if self._state.retry_count >= self._state.max_retries:
            return RetryStatus.EXHAUSTED
        return RetryStatus.READY

    # ─── Driving ────────────────────────────────────────────────────

    def report_error(self, error: BaseException | Any, retryable: bool | None = None) -> None:
        """Record a failure of the operation outside a retry.

        Non-retryable errors leave the state unchanged. Ignored while an
        attempt is in progress or the budget is spent.
        """
        status = self._state.status
        if status in (RetryStatus.RETRYING, RetryStatus.EXHAUSTED):
            _logger.debug("retry_state.report_ignored", machine=self._name, status=status.value)
            return
        if retryable is None:
            retryable = is_retryable_error(error)
        if not retryable:
            _logger.debug("retry_state.not_retryable", machine=self._name)
            return

        self._set(status=self._after_failure_status(), last_error=message(error))
        if self._auto_retry and self._state.status is RetryStatus.READY:
            self._start_auto()

    def _start_auto(self) -> None:
        if self._auto_task is not None and not self._auto_task.done():
            return
        self._auto_task = asyncio.ensure_future(self._auto_loop())

    async def _auto_loop(self) -> None:
        while self._state.status is RetryStatus.READY:
            await self.retry()

    async def retry(self) -> bool:
        """Run one retry attempt after its backoff delay.

        The switch to ``RETRYING`` happens before this coroutine first
        suspends, so concurrent callers (a user click racing the auto-retry
        loop) see the attempt as taken and are refused.

        Returns:
            True if the attempt succeeded; False if it failed, was refused
            (not ``READY``) or was abandoned by ``reset()``.

        Raises:
            RuntimeError: If the machine has no operation to drive.
        """
        if self._state.status is not RetryStatus.READY:
            _logger.debug(
                "retry_state.retry_refused",
                machine=self._name,
                status=self._state.status.value,
            )
            return False
        if self._operation is None:
            raise RuntimeError(f"{self._name}: no operation to retry")

        attempt, delay = self._begin_attempt()
        task = asyncio.ensure_future(self._attempt(self._operation, attempt, delay))
        self._retry_task = task
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            return False
        finally:
            if self._retry_task is task:
                self._retry_task = None

    def _begin_attempt(self) -> tuple[int, float]:
        attempt = self._state.retry_count + 1
        delay = self._policy.delay(attempt)
        countdown = math.ceil(delay)
        self._history.append(
            RetryAttempt(attempt, delay, utc_now(), error=self._state.last_error)
        )
        self._set(
            status=RetryStatus.RETRYING,
            retry_count=attempt,
            next_retry_at=self._clock.now() + delay,
            countdown=countdown,
        )
        _logger.info(
            "retry_state.attempt_scheduled",
            machine=self._name,
            attempt=attempt,
            max_retries=self._state.max_retries,
            delay_seconds=round(delay, 3),
        )
        self._start_ticker(countdown)
        return attempt, delay

    async def _attempt(self, operation: RetryOperation, attempt: int, delay: float) -> bool:
        try:
            await self._clock.sleep(delay)
            self._stop_ticker()
            self._set(next_retry_at=None, countdown=0)
            await operation(attempt)
        except Exception as exc:
            self._stop_ticker()
            self._set(
                status=self._after_failure_status(),
                next_retry_at=None,
                countdown=0,
                last_error=message(exc),
            )
            _logger.warning(
                "retry_state.attempt_failed",
                machine=self._name,
                attempt=attempt,
                status=self._state.status.value,
            )
            return False
        finally:
            self._stop_ticker()

        self._set(status=RetryStatus.IDLE, retry_count=0, last_error=None)
        _logger.info("retry_state.recovered", machine=self._name, attempt=attempt)
        return True

    # ─── Countdown ──────────────────────────────────────────────────

    def _start_ticker(self, countdown: int) -> None:
        self._stop_ticker()
        if countdown > 0:
            self._ticker = asyncio.ensure_future(self._tick(countdown))

    def _stop_ticker(self) -> None:
        ticker, self._ticker = self._ticker, None
        if ticker is not None and not ticker.done():
            ticker.cancel()

    async def _tick(self, remaining: int) -> None:
        while remaining > 0:
            await self._clock.sleep(COUNTDOWN_TICK_SECONDS)
            remaining -= 1
            self._set(countdown=remaining)

    # ─── Mirroring a RetryExecutor ──────────────────────────────────

    def observe_retry(
        self, attempt: int, max_retries: int, delay: float, error: BaseException
    ) -> None:
        """``on_retry`` hook for ``RetryExecutor``: show a pending retry."""
        countdown = math.ceil(delay)
        error_message = message(error)
        self._history.append(RetryAttempt(attempt, delay, utc_now(), error=error_message))
        self._set(
            status=RetryStatus.RETRYING,
            retry_count=attempt,
            max_retries=max_retries,
            next_retry_at=self._clock.now() + delay,
            countdown=countdown,
            last_error=error_message,
        )
        self._start_ticker(countdown)

    def record_success(self) -> None:
        """The mirrored operation eventually succeeded."""
        self._stop_ticker()
        self._set(
            status=RetryStatus.IDLE,
            retry_count=0,
            next_retry_at=None,
            countdown=0,
            last_error=None,
        )

    def record_failure(self, error: BaseException | Any) -> None:
        """The mirrored operation gave up with ``error``."""
        if self._state.status is not RetryStatus.RETRYING:
            self.report_error(error)
            return
        self._stop_ticker()
        self._set(
            status=self._after_failure_status(),
            next_retry_at=None,
            countdown=0,
            last_error=message(error),
        )

    # ─── Reset ──────────────────────────────────────────────────────

    def reset(self) -> None:
        """Abandon any pending attempt and return to ``IDLE``.

        ``history`` is append-only and survives a reset; attempt numbers of
        the next cycle start again at 1.
        """
        for task in (self._auto_task, self._retry_task):
            if task is not None and not task.done():
                task.cancel()
        self._auto_task = None
        self._retry_task = None
        self._stop_ticker()
        self._set(
            status=RetryStatus.IDLE,
            retry_count=0,
            next_retry_at=None,
            countdown=0,
            last_error=None,
        )
        _logger.debug("retry_state.reset", machine=self._name)
