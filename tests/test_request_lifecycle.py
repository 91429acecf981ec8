"""Tests for paylink.execution.lifecycle module.

Covers single-flight ordering (last execute wins), cancellation, error
state, manual and automatic retry, reset, and the transport helpers.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from paylink.core.config import RetryConfig
from paylink.core.errors import ErrorCategory, HttpResponse, TransportError, UISeverity
from paylink.execution.lifecycle import (
    RequestLifecycleManager,
    RequestOptions,
    RequestState,
)
from tests.helpers import FlakyOperation, network_error, response_error

_INSTANT = RetryConfig(max_retries=3, base_delay_seconds=0.0, max_delay_seconds=0.0)


async def _settle(rounds: int = 10) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


class Gate:
    """Operation that blocks until released with a value or an error."""

    def __init__(self, *, stubborn: bool = False) -> None:
        self._event = asyncio.Event()
        self._outcome: object = None
        self.stubborn = stubborn
        self.started = False
        self.cancelled = False

    def release(self, outcome: object) -> None:
        self._outcome = outcome
        self._event.set()

    async def _finish(self) -> object:
        if isinstance(self._outcome, BaseException):
            raise self._outcome
        return self._outcome

    async def __call__(self) -> object:
        self.started = True
        try:
            await self._event.wait()
        except asyncio.CancelledError:
            self.cancelled = True
            if not self.stubborn:
                raise
            # Ignores the abort, like a transport that cannot be interrupted
            await self._event.wait()
        return await self._finish()


@pytest.fixture
def manager() -> RequestLifecycleManager:
    return RequestLifecycleManager(_INSTANT)


# ─── Basic lifecycle ───────────────────────────────────────────────────


class TestExecute:
    """Tests for execute() on a single request."""

    @pytest.mark.asyncio
    async def test_initial_state(self, manager):
        assert manager.state == RequestState()
        assert manager.generation == 0
        assert not manager.is_pending

    @pytest.mark.asyncio
    async def test_loading_while_in_flight(self, manager):
        gate = Gate()
        task = asyncio.ensure_future(manager.execute(gate))
        await _settle()

        assert manager.state.loading is True
        assert manager.is_pending

        gate.release({"employees": 3})
        assert await task == {"employees": 3}
        assert manager.state.loading is False
        assert manager.state.data == {"employees": 3}
        assert not manager.is_pending

    @pytest.mark.asyncio
    async def test_success_calls_hook(self, manager):
        on_success = MagicMock()

        result = await manager.execute(FlakyOperation(default=[1, 2]), RequestOptions(on_success=on_success))

        assert result == [1, 2]
        on_success.assert_called_once_with([1, 2])

    @pytest.mark.asyncio
    async def test_failure_updates_state_and_raises(self, manager):
        error = response_error(422, {"errors": ["Email is required"]})
        on_error = MagicMock()

        with pytest.raises(type(error)):
            await manager.execute(FlakyOperation(error), RequestOptions(on_error=on_error))

        state = manager.state
        assert state.loading is False
        assert state.error == "Email is required"
        assert state.error_category == ErrorCategory.VALIDATION
        assert state.error_severity == UISeverity.WARNING
        assert state.can_retry is False
        assert manager.last_error is error
        on_error.assert_called_once_with(error, "Email is required")

    @pytest.mark.asyncio
    async def test_retryable_failure_sets_can_retry(self, manager):
        with pytest.raises(TransportError):
            await manager.execute(FlakyOperation(network_error()))

        assert manager.state.can_retry is True
        assert manager.state.error_severity == UISeverity.NETWORK

    @pytest.mark.asyncio
    async def test_success_clears_previous_error(self, manager):
        with pytest.raises(TransportError):
            await manager.execute(FlakyOperation(network_error()))

        await manager.execute(FlakyOperation(default="fresh"))

        assert manager.state.error is None
        assert manager.state.error_category is None
        assert manager.state.can_retry is False
        assert manager.state.data == "fresh"

    @pytest.mark.asyncio
    async def test_transport_cancellation_is_not_an_error(self, manager):
        result = await manager.execute(FlakyOperation(TransportError("ERR_CANCELED")))

        assert result is None
        assert manager.state.error is None
        assert manager.state.loading is False

    @pytest.mark.asyncio
    async def test_async_hooks_are_awaited(self, manager):
        on_success = AsyncMock()

        await manager.execute(FlakyOperation(default=1), RequestOptions(on_success=on_success))

        on_success.assert_awaited_once_with(1)


# ─── Ordering ──────────────────────────────────────────────────────────


class TestLastExecuteWins:
    """Tests for the single-flight ordering guarantee."""

    @pytest.mark.asyncio
    async def test_superseded_request_is_aborted(self, manager):
        first, second = Gate(), Gate()
        task1 = asyncio.ensure_future(manager.execute(first))
        await _settle()
        task2 = asyncio.ensure_future(manager.execute(second))
        await _settle()

        assert first.cancelled
        assert await task1 is None

        second.release("second")
        assert await task2 == "second"
        assert manager.state.data == "second"

    @pytest.mark.asyncio
    async def test_late_result_of_superseded_request_is_ignored(self, manager):
        first, second = Gate(stubborn=True), Gate()
        task1 = asyncio.ensure_future(manager.execute(first))
        await _settle()
        task2 = asyncio.ensure_future(manager.execute(second))
        await _settle()

        second.release("fresh")
        assert await task2 == "fresh"

        first.release("stale")
        assert await task1 is None
        assert manager.state.data == "fresh"
        assert manager.state.loading is False

    @pytest.mark.asyncio
    async def test_late_failure_of_superseded_request_is_ignored(self, manager):
        on_error = MagicMock()
        first, second = Gate(stubborn=True), Gate()
        task1 = asyncio.ensure_future(manager.execute(first, RequestOptions(on_error=on_error)))
        await _settle()
        task2 = asyncio.ensure_future(manager.execute(second))
        await _settle()

        first.release(response_error(500))
        assert await task1 is None
        assert manager.state.error is None
        assert manager.state.loading is True
        on_error.assert_not_called()

        second.release("ok")
        assert await task2 == "ok"

    @pytest.mark.asyncio
    async def test_rapid_calls_keep_only_last(self, manager):
        gates = [Gate(stubborn=True) for _ in range(5)]
        tasks = []
        for gate in gates:
            tasks.append(asyncio.ensure_future(manager.execute(gate)))
            await _settle()

        for index, gate in reversed(list(enumerate(gates))):
            gate.release(index)

        results = await asyncio.gather(*tasks)
        assert results == [None, None, None, None, 4]
        assert manager.state.data == 4
        assert manager.generation == 5


# ─── Cancellation ──────────────────────────────────────────────────────


class TestCancel:
    """Tests for cancel()."""

    @pytest.mark.asyncio
    async def test_cancel_aborts_and_returns_none(self, manager):
        gate = Gate()
        task = asyncio.ensure_future(manager.execute(gate))
        await _settle()

        manager.cancel()

        assert await task is None
        assert gate.cancelled
        assert manager.state.loading is False
        assert manager.state.error is None

    @pytest.mark.asyncio
    async def test_late_failure_after_cancel_sets_no_error(self, manager):
        gate = Gate(stubborn=True)
        task = asyncio.ensure_future(manager.execute(gate))
        await _settle()
        manager.cancel()

        gate.release(network_error())

        assert await task is None
        assert manager.state.error is None
        assert manager.state.data is None

    @pytest.mark.asyncio
    async def test_cancel_without_request_is_harmless(self, manager):
        manager.cancel()
        manager.cancel()
        assert manager.state == RequestState()

    @pytest.mark.asyncio
    async def test_cancelling_the_caller_propagates(self, manager):
        gate = Gate()
        task = asyncio.ensure_future(manager.execute(gate))
        await _settle()

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert gate.cancelled
        assert manager.state.loading is False
        assert not manager.is_pending


# ─── Retry ─────────────────────────────────────────────────────────────


class TestRetry:
    """Tests for automatic retry and retry()."""

    @pytest.mark.asyncio
    async def test_auto_retry_exposes_progress(self, manager):
        states: list[RequestState] = []
        manager.subscribe(states.append)
        on_retry = MagicMock()
        operation = FlakyOperation(network_error(), network_error(), default="recovered")

        result = await manager.execute(
            operation,
            RequestOptions(auto_retry=True, on_retry=on_retry, retry_message="Hang on..."),
        )

        assert result == "recovered"
        assert operation.calls == 3
        retrying = [s for s in states if s.is_retrying]
        assert [s.retry_count for s in retrying] == [1, 2]
        assert all(s.retry_message == "Hang on..." for s in retrying)
        assert manager.state.is_retrying is False
        assert manager.state.retry_message == ""
        assert manager.state.retry_count == 2
        assert on_retry.call_count == 2

    @pytest.mark.asyncio
    async def test_auto_retry_respects_retries_option(self, manager):
        operation = FlakyOperation(*(network_error() for _ in range(5)))

        with pytest.raises(TransportError):
            await manager.execute(operation, RequestOptions(auto_retry=True, retries=1))

        assert operation.calls == 2
        assert manager.state.is_retrying is False
        assert manager.state.error is not None

    @pytest.mark.asyncio
    async def test_config_enables_auto_retry(self):
        config = RetryConfig(max_retries=2, base_delay_seconds=0, max_delay_seconds=0, auto_retry=True)
        manager = RequestLifecycleManager(config)
        operation = FlakyOperation(response_error(503), default="ok")

        assert await manager.execute(operation) == "ok"
        assert operation.calls == 2

    @pytest.mark.asyncio
    async def test_retry_reruns_last_request_with_auto_retry(self, manager):
        operation = FlakyOperation(network_error(), network_error(), default="second time lucky")

        with pytest.raises(TransportError):
            await manager.execute(operation)
        assert operation.calls == 1

        result = await manager.retry()

        assert result == "second time lucky"
        assert operation.calls == 3
        assert manager.state.error is None

    @pytest.mark.asyncio
    async def test_retry_without_request_returns_none(self, manager):
        assert await manager.retry() is None
        assert manager.state == RequestState()

    @pytest.mark.asyncio
    async def test_cancel_during_backoff_stops_retrying(self, manual_clock):
        manager = RequestLifecycleManager(RetryConfig(max_retries=3), clock=manual_clock)
        operation = FlakyOperation(*(network_error() for _ in range(5)))

        task = asyncio.ensure_future(manager.execute(operation, RequestOptions(auto_retry=True)))
        await manual_clock.settle()
        assert manager.state.is_retrying is True

        manager.cancel()
        assert await task is None
        await manual_clock.advance(120)

        assert operation.calls == 1
        assert manager.state.is_retrying is False
        assert manager.state.error is None


# ─── Reset, clear_error, subscribe ─────────────────────────────────────


class TestStateManagement:
    """Tests for reset(), clear_error() and subscribe()."""

    @pytest.mark.asyncio
    async def test_clear_error_keeps_data(self, manager):
        await manager.execute(FlakyOperation(default="data"))
        with pytest.raises(TransportError):
            await manager.execute(FlakyOperation(network_error()))

        manager.clear_error()

        assert manager.state.error is None
        assert manager.state.can_retry is False
        assert manager.state.data == "data"
        assert manager.last_error is None

    @pytest.mark.asyncio
    async def test_reset_clears_everything(self, manager):
        with pytest.raises(TransportError):
            await manager.execute(FlakyOperation(network_error()))

        manager.reset()

        assert manager.state == RequestState()
        assert await manager.retry() is None

    @pytest.mark.asyncio
    async def test_reset_aborts_in_flight_request(self, manager):
        gate = Gate()
        task = asyncio.ensure_future(manager.execute(gate))
        await _settle()

        manager.reset()

        assert await task is None
        assert manager.state == RequestState()

    @pytest.mark.asyncio
    async def test_unsubscribe(self, manager):
        listener = MagicMock()
        unsubscribe = manager.subscribe(listener)
        await manager.execute(FlakyOperation(default=1))
        calls = listener.call_count
        assert calls >= 2

        unsubscribe()
        await manager.execute(FlakyOperation(default=2))
        assert listener.call_count == calls

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_request(self, manager):
        manager.subscribe(MagicMock(side_effect=RuntimeError("render failed")))

        assert await manager.execute(FlakyOperation(default="ok")) == "ok"


# ─── Transport helpers ─────────────────────────────────────────────────


class TestTransportHelpers:
    """Tests for get/post/put/delete."""

    @pytest.fixture
    def transport(self) -> MagicMock:
        transport = MagicMock()
        transport.get = AsyncMock(return_value=HttpResponse(200, {"items": []}))
        transport.post = AsyncMock(return_value=HttpResponse(201, {"id": 7}))
        transport.put = AsyncMock(return_value=HttpResponse(200, {"id": 7, "name": "B"}))
        transport.delete = AsyncMock(return_value=HttpResponse(204, None))
        return transport

    @pytest.mark.asyncio
    async def test_verbs_return_body(self, transport):
        manager = RequestLifecycleManager(_INSTANT, transport=transport)

        assert await manager.get("/employees", params={"page": 2}) == {"items": []}
        assert await manager.post("/employees", {"name": "A"}) == {"id": 7}
        assert await manager.put("/employees/7", {"name": "B"}) == {"id": 7, "name": "B"}
        assert await manager.delete("/employees/7") is None

        transport.get.assert_awaited_once_with("/employees", params={"page": 2})
        transport.post.assert_awaited_once_with("/employees", {"name": "A"})
        transport.put.assert_awaited_once_with("/employees/7", {"name": "B"})
        transport.delete.assert_awaited_once_with("/employees/7")

    @pytest.mark.asyncio
    async def test_get_failure_goes_through_state(self, transport):
        transport.get = AsyncMock(side_effect=response_error(404))
        manager = RequestLifecycleManager(_INSTANT, transport=transport)

        with pytest.raises(Exception):
            await manager.get("/employees/99")

        assert manager.state.error_category == ErrorCategory.NOT_FOUND

    @pytest.mark.asyncio
    async def test_missing_transport(self, manager):
        with pytest.raises(RuntimeError, match="no transport"):
            await manager.get("/employees")
