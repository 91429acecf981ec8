"""Retry loop around an asynchronous operation.

``RetryExecutor`` re-invokes a failing operation with exponential backoff
until it succeeds, the failure is not worth retrying, or the retry budget
is spent. The final failure is re-raised unchanged so callers can classify
or display it themselves.

Example usage:
    executor = RetryExecutor(RetryConfig(max_retries=3))

    def notify(attempt, max_retries, delay, error):
        logger.info("retrying", attempt=attempt, delay=delay)

    employees = await executor.execute(lambda: api.get("/employees"), on_retry=notify)

The executor has exactly one side channel, the ``on_retry`` hook, which is
called once before each backoff delay. It keeps no attempt history; only
``last_error`` is retained.
"""

from __future__ import annotations

import inspect
import random
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from paylink.core.config import RetryConfig
from paylink.core.errors import classify, is_retryable_error
from paylink.core.logging import get_logger
from paylink.execution.backoff import compute_backoff_delay
from paylink.host.clock import Clock, SystemClock

_logger = get_logger("retry")

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
ShouldRetry = Callable[[BaseException], bool]
RetryHook = Callable[[int, int, float, BaseException], Any]
"""``on_retry(attempt, max_retries, delay_seconds, error)``."""


class RetryExecutor:
    """Runs operations with bounded, jittered exponential backoff.

    Args:
        config: Default retry settings; per-call arguments override them.
        clock: Clock used for the backoff delay.
        rng: Random source for backoff jitter.
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        clock: Clock | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._config = config or RetryConfig()
        self._clock = clock or SystemClock()
        self._rng = rng
        self.last_error: BaseException | None = None

    @property
    def config(self) -> RetryConfig:
        return self._config

    async def execute(
        self,
        operation: Operation[T],
        *,
        max_retries: int | None = None,
        base_delay: float | None = None,
        max_delay: float | None = None,
        should_retry: ShouldRetry | None = None,
        on_retry: RetryHook | None = None,
    ) -> T:
        """Invoke ``operation`` until it succeeds or retrying stops.

        Args:
            operation: Zero-argument callable returning an awaitable.
            max_retries: Retries after the first failure; 0 calls exactly once.
            base_delay: First backoff delay in seconds.
            max_delay: Cap for any backoff delay in seconds.
            should_retry: Overrides the classification-based decision.
            on_retry: Notified before each backoff delay.

        Returns:
            The operation's result.

        Raises:
            The last error raised by the operation, unchanged.
        """
        retries = self._config.max_retries if max_retries is None else max(0, max_retries)
        base = self._config.base_delay_seconds if base_delay is None else base_delay
        cap = self._config.max_delay_seconds if max_delay is None else max_delay
        decide = should_retry or is_retryable_error

        attempt = 1
        while True:
            try:
                return await operation()
            except Exception as exc:
                self.last_error = exc
                category = classify(exc)
                if attempt > retries or not decide(exc):
                    _logger.debug(
                        "retry.giving_up",
                        attempt=attempt,
                        max_retries=retries,
                        category=category.value,
                    )
                    raise

                delay = compute_backoff_delay(attempt, base, cap, rng=self._rng)
                _logger.info(
                    "retry.scheduled",
                    attempt=attempt,
                    max_retries=retries,
                    delay_seconds=round(delay, 3),
                    category=category.value,
                )
                if on_retry is not None:
                    result = on_retry(attempt, retries, delay, exc)
                    if inspect.isawaitable(result):
                        await result
                await self._clock.sleep(delay)
                attempt += 1


async def with_retry(
    operation: Operation[T],
    *,
    max_retries: int | None = None,
    base_delay: float | None = None,
    max_delay: float | None = None,
    should_retry: ShouldRetry | None = None,
    on_retry: RetryHook | None = None,
    clock: Clock | None = None,
) -> T:
    """Shortcut for a one-off ``RetryExecutor().execute(...)``."""
    executor = RetryExecutor(clock=clock)
    return await executor.execute(
        operation,
        max_retries=max_retries,
        base_delay=base_delay,
        max_delay=max_delay,
        should_retry=should_retry,
        on_retry=on_retry,
    )
