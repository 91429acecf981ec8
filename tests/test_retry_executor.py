"""Tests for paylink.execution.retry module.

Backoff delays go through a ManualClock (or a zero-delay config), so no
test waits on the wall clock.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from paylink.core.config import RetryConfig
from paylink.execution.retry import RetryExecutor, with_retry
from paylink.host.clock import ManualClock
from tests.helpers import FlakyOperation, network_error, response_error

_INSTANT = RetryConfig(max_retries=3, base_delay_seconds=0.0, max_delay_seconds=0.0)


class TestRetryExecutor:
    """Tests for RetryExecutor.execute()."""

    @pytest.mark.asyncio
    async def test_success_first_try(self):
        operation = FlakyOperation(default="payload")
        hook = MagicMock()

        result = await RetryExecutor(_INSTANT).execute(operation, on_retry=hook)

        assert result == "payload"
        assert operation.calls == 1
        hook.assert_not_called()

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failures(self):
        operation = FlakyOperation(network_error(), response_error(503), default="done")
        hook = MagicMock()

        result = await RetryExecutor(_INSTANT).execute(operation, on_retry=hook)

        assert result == "done"
        assert operation.calls == 3
        assert [c.args[0] for c in hook.call_args_list] == [1, 2]

    @pytest.mark.asyncio
    async def test_always_failing_calls_max_plus_one(self):
        final = network_error()
        operation = FlakyOperation(network_error(), network_error(), network_error(), final)
        hook = MagicMock()
        executor = RetryExecutor(_INSTANT)

        with pytest.raises(type(final)) as exc_info:
            await executor.execute(operation, on_retry=hook)

        assert exc_info.value is final
        assert operation.calls == 4
        assert [c.args[0] for c in hook.call_args_list] == [1, 2, 3]
        assert all(c.args[1] == 3 for c in hook.call_args_list)
        assert executor.last_error is final

    @pytest.mark.asyncio
    async def test_non_retryable_fails_immediately(self):
        error = response_error(422, {"errors": ["bad"]})
        operation = FlakyOperation(error)
        hook = MagicMock()

        with pytest.raises(type(error)):
            await RetryExecutor(_INSTANT).execute(operation, on_retry=hook)

        assert operation.calls == 1
        hook.assert_not_called()

    @pytest.mark.asyncio
    async def test_zero_retries_calls_exactly_once(self):
        operation = FlakyOperation(network_error())

        with pytest.raises(Exception):
            await RetryExecutor(_INSTANT).execute(operation, max_retries=0)

        assert operation.calls == 1

    @pytest.mark.asyncio
    async def test_custom_should_retry(self):
        operation = FlakyOperation(ValueError("transient in our world"), default=42)

        result = await RetryExecutor(_INSTANT).execute(
            operation,
            should_retry=lambda exc: isinstance(exc, ValueError),
        )

        assert result == 42
        assert operation.calls == 2

    @pytest.mark.asyncio
    async def test_hook_receives_delay_and_error(self):
        error = network_error()
        operation = FlakyOperation(error)
        hook = MagicMock()

        await RetryExecutor(_INSTANT).execute(operation, on_retry=hook)

        attempt, max_retries, delay, seen = hook.call_args.args
        assert (attempt, max_retries, delay) == (1, 3, 0.0)
        assert seen is error

    @pytest.mark.asyncio
    async def test_async_hook_is_awaited(self):
        operation = FlakyOperation(network_error())
        hook = AsyncMock()

        await RetryExecutor(_INSTANT).execute(operation, on_retry=hook)

        hook.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_waits_backoff_delay_on_clock(self, manual_clock: ManualClock):
        config = RetryConfig(max_retries=2, base_delay_seconds=1.0, max_delay_seconds=1.0)
        operation = FlakyOperation(network_error(), default="late")
        executor = RetryExecutor(config, clock=manual_clock)

        task = asyncio.ensure_future(executor.execute(operation))
        await manual_clock.settle()
        assert operation.calls == 1
        assert not task.done()

        await manual_clock.advance(0.5)
        assert not task.done()

        await manual_clock.advance(0.5)
        assert await task == "late"
        assert operation.calls == 2

    @pytest.mark.asyncio
    async def test_cancel_during_delay_stops_retrying(self, manual_clock: ManualClock):
        operation = FlakyOperation(network_error())
        executor = RetryExecutor(RetryConfig(max_retries=3), clock=manual_clock)

        task = asyncio.ensure_future(executor.execute(operation))
        await manual_clock.settle()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        await manual_clock.advance(60)
        assert operation.calls == 1

    @pytest.mark.asyncio
    async def test_config_defaults_used(self):
        executor = RetryExecutor()
        assert executor.config.max_retries == 3
        assert executor.config.base_delay_seconds == 1.0
        assert executor.config.max_delay_seconds == 10.0


class TestWithRetry:
    """Tests for the with_retry() shortcut."""

    @pytest.mark.asyncio
    async def test_zero_retries(self):
        operation = FlakyOperation(response_error(503))

        with pytest.raises(Exception):
            await with_retry(operation, max_retries=0)

        assert operation.calls == 1

    @pytest.mark.asyncio
    async def test_retries_with_clock(self, manual_clock: ManualClock):
        operation = FlakyOperation(response_error(503), default="ok")

        task = asyncio.ensure_future(
            with_retry(operation, max_retries=1, base_delay=2.0, max_delay=2.0, clock=manual_clock)
        )
        await manual_clock.advance(2.0)

        assert await task == "ok"
        assert operation.calls == 2
