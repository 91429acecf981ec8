"""Single-flight request lifecycle with cancellation and retry.

``RequestLifecycleManager`` owns at most one logical request at a time and
exposes a ``RequestState`` snapshot for the presentation layer (spinner,
error banner, retry indicator).

Ordering guarantee: every ``execute()`` (and every ``cancel()``) increments
the manager's generation token. Each request remembers the generation it was
started under and may only touch shared state while that generation is
still current. A request that was superseded or cancelled is discarded
whatever its outcome and whenever it settles, so rapid repeated calls can
never leave the UI showing an older response ("last execute() wins").

Cancellation is cooperative: invalidating the generation also cancels the
asyncio task running the request, which aborts the transport I/O and any
pending backoff delay.

Example usage:
    manager = RequestLifecycleManager(RetryConfig(max_retries=3), transport=transport)
    manager.subscribe(render)

    employees = await manager.get("/employees", RequestOptions(auto_retry=True))
    if manager.state.can_retry:
        await manager.retry()
"""

from __future__ import annotations

import asyncio
import inspect
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import Any

from paylink.core.config import RetryConfig
from paylink.core.errors import (
    ErrorCategory,
    ErrorClassifier,
    HttpResponse,
    TransportError,
    UISeverity,
)
from paylink.core.logging import RequestContext, get_logger, with_context
from paylink.execution.retry import RetryExecutor, RetryHook
from paylink.host.clock import Clock
from paylink.transport.base import Transport

_logger = get_logger("lifecycle")

OperationFactory = Callable[[], Awaitable[Any]]
StateListener = Callable[["RequestState"], None]


@dataclass(frozen=True)
class RequestState:
    """Snapshot of a manager's request, as read by the presentation layer.

    Attributes:
        loading: A request is in flight.
        data: Result of the last successful request.
        error: Human-readable message of the last failure.
        error_category: Category of the last failure.
        error_severity: UI severity of the last failure.
        retry_count: Automatic retries performed for the current request.
        is_retrying: An automatic retry is pending or running.
        retry_message: Message to show while retrying.
        can_retry: The last failure is retryable.
    """

    loading: bool = False
    data: Any = None
    error: str | None = None
    error_category: ErrorCategory | None = None
    error_severity: UISeverity | None = None
    retry_count: int = 0
    is_retrying: bool = False
    retry_message: str = ""
    can_retry: bool = False


@dataclass(frozen=True)
class RequestOptions:
    """Per-request options for ``RequestLifecycleManager.execute``.

    Attributes:
        on_success: Called with the result after state is updated.
        on_error: Called with ``(error, message)`` after state is updated.
        on_retry: Called before each automatic retry delay.
        auto_retry: Route through the retry executor; manager default when None.
        retries: Maximum automatic retries; manager default when None.
        retry_message: Message exposed while retrying; manager default when None.
    """

    on_success: Callable[[Any], Any] | None = None
    on_error: Callable[[BaseException, str], Any] | None = None
    on_retry: RetryHook | None = None
    auto_retry: bool | None = None
    retries: int | None = None
    retry_message: str | None = None


@dataclass(frozen=True)
class _LastRequest:
    factory: OperationFactory
    options: RequestOptions


_CLEARED_ERROR: dict[str, Any] = {
    "error": None,
    "error_category": None,
    "error_severity": None,
    "can_retry": False,
}

_CLEARED_RETRY: dict[str, Any] = {
    "is_retrying": False,
    "retry_message": "",
}


async def _call_hook(hook: Callable[..., Any] | None, *args: Any) -> None:
    if hook is None:
        return
    result = hook(*args)
    if inspect.isawaitable(result):
        await result


async def _body_of(response: Awaitable[HttpResponse]) -> Any:
    return (await response).body


class RequestLifecycleManager:
    """Single-flight owner of one logical request.

    Args:
        config: Retry defaults (auto-retry, retry budget, backoff, message).
        transport: Used by the ``get``/``post``/``put``/``delete`` helpers.
        clock: Clock for backoff delays.
        classifier: Builds the error fields of the state.
        rng: Random source for backoff jitter.
        name: Component name used in log entries.
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        transport: Transport | None = None,
        clock: Clock | None = None,
        classifier: ErrorClassifier | None = None,
        rng: random.Random | None = None,
        name: str = "lifecycle",
    ) -> None:
        self._config = config or RetryConfig()
        self._transport = transport
        self._executor = RetryExecutor(self._config, clock=clock, rng=rng)
        self._classifier = classifier or ErrorClassifier()
        self._name = name

        self._generation = 0
        self._pending: asyncio.Task[Any] | None = None
        self._last_request: _LastRequest | None = None
        self._last_error: BaseException | None = None
        self._state = RequestState()
        self._listeners: list[StateListener] = []

    # ─── State surface ──────────────────────────────────────────────

    @property
    def state(self) -> RequestState:
        return self._state

    @property
    def generation(self) -> int:
        """Current generation token; every earlier value is stale."""
        return self._generation

    @property
    def last_error(self) -> BaseException | None:
        return self._last_error

    @property
    def is_pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with every new state; returns an unsubscriber."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                _logger.exception("lifecycle.listener_failed", manager=self._name)

    # ─── Generation handling ────────────────────────────────────────

    def _invalidate(self) -> None:
        """Make every in-flight request stale and abort its I/O."""
        self._generation += 1
        task, self._pending = self._pending, None
        if task is not None and not task.done():
            task.cancel()

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _release(self, task: asyncio.Task[Any]) -> None:
        if self._pending is task:
            self._pending = None

    # ─── Public contract ────────────────────────────────────────────

    async def execute(
        self,
        operation_factory: OperationFactory,
        options: RequestOptions | None = None,
    ) -> Any:
        """Run a request, superseding any request still in flight.

        Args:
            operation_factory: Zero-argument callable returning an awaitable.
            options: Per-request hooks and retry overrides.

        Returns:
            The operation's result, or None when this request was cancelled
            or superseded before it settled.

        Raises:
            The operation's error when this request is still current; state
            is updated before the error propagates.
        """
        options = options or RequestOptions()
        self._invalidate()
        generation = self._generation
        self._last_request = _LastRequest(operation_factory, options)

        auto_retry = self._config.auto_retry if options.auto_retry is None else options.auto_retry
        retries = self._config.max_retries if options.retries is None else options.retries
        retry_message = (
            self._config.retry_message if options.retry_message is None else options.retry_message
        )

        self._last_error = None
        self._update(loading=True, retry_count=0, **_CLEARED_ERROR, **_CLEARED_RETRY)

        async def handle_retry(
            attempt: int, max_retries: int, delay: float, error: BaseException
        ) -> None:
            if not self._is_current(generation):
                return
            self._update(retry_count=attempt, is_retrying=True, retry_message=retry_message)
            await _call_hook(options.on_retry, attempt, max_retries, delay, error)

        async def run() -> Any:
            with with_context(RequestContext(component=self._name, generation=generation)):
                if auto_retry:
                    return await self._executor.execute(
                        operation_factory,
                        max_retries=retries,
                        on_retry=handle_retry,
                    )
                return await operation_factory()

        task: asyncio.Task[Any] = asyncio.ensure_future(run())
        self._pending = task
        _logger.debug("request.started", manager=self._name, generation=generation,
                      auto_retry=auto_retry)

        try:
            value = await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                # The caller itself is being cancelled, not just this request
                if self._is_current(generation):
                    self._release(task)
                    self._update(loading=False, **_CLEARED_RETRY)
                raise
            _logger.debug("request.discarded", manager=self._name, generation=generation,
                          reason="cancelled")
            return None
        except Exception as exc:
            if not self._is_current(generation):
                _logger.debug("request.discarded", manager=self._name, generation=generation,
                              reason="stale_failure")
                return None
            self._release(task)
            if isinstance(exc, TransportError) and exc.is_cancellation:
                self._update(loading=False, **_CLEARED_RETRY)
                return None
            await self._apply_failure(exc, options)
            raise

        if not self._is_current(generation):
            _logger.debug("request.discarded", manager=self._name, generation=generation,
                          reason="stale_result")
            return None
        self._release(task)
        self._update(loading=False, data=value, **_CLEARED_ERROR, **_CLEARED_RETRY)
        _logger.debug("request.succeeded", manager=self._name, generation=generation)
        await _call_hook(options.on_success, value)
        return value

    async def _apply_failure(self, exc: BaseException, options: RequestOptions) -> None:
        classified = self._classifier.classify_error(exc)
        self._last_error = exc
        self._update(
            loading=False,
            error=classified.message,
            error_category=classified.category,
            error_severity=classified.severity,
            can_retry=classified.retryable,
            **_CLEARED_RETRY,
        )
        _logger.warning(
            "request.failed",
            manager=self._name,
            generation=self._generation,
            category=classified.category.value,
            status_code=classified.status_code,
            retryable=classified.retryable,
        )
        await _call_hook(options.on_error, exc, classified.message)

    def cancel(self) -> None:
        """Abort the current request; its outcome will be ignored.

        Never sets the error field, even if the aborted request later fails.
        """
        had_pending = self.is_pending
        self._invalidate()
        if self._state.loading or self._state.is_retrying:
            self._update(loading=False, **_CLEARED_RETRY)
        _logger.debug("request.cancelled", manager=self._name, generation=self._generation,
                      had_pending=had_pending)

    async def retry(self) -> Any:
        """Re-run the most recently attempted request with auto-retry on."""
        last = self._last_request
        if last is None:
            _logger.warning("request.retry_without_request", manager=self._name)
            return None
        return await self.execute(last.factory, replace(last.options, auto_retry=True))

    def clear_error(self) -> None:
        """Dismiss the current error without touching data."""
        self._last_error = None
        self._update(**_CLEARED_ERROR)

    def reset(self) -> None:
        """Cancel any request and clear all state, including the retry target."""
        self.cancel()
        self._last_request = None
        self._last_error = None
        self._update(**vars(RequestState()))

    # ─── Transport helpers ──────────────────────────────────────────

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise RuntimeError(f"{self._name}: no transport configured")
        return self._transport

    async def get(
        self,
        url: str,
        options: RequestOptions | None = None,
        *,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """GET ``url`` through ``execute``; returns the decoded body."""
        transport = self._require_transport()
        return await self.execute(lambda: _body_of(transport.get(url, params=params)), options)

    async def post(self, url: str, json: Any = None, options: RequestOptions | None = None) -> Any:
        transport = self._require_transport()
        return await self.execute(lambda: _body_of(transport.post(url, json)), options)

    async def put(self, url: str, json: Any = None, options: RequestOptions | None = None) -> Any:
        transport = self._require_transport()
        return await self.execute(lambda: _body_of(transport.put(url, json)), options)

    async def delete(self, url: str, options: RequestOptions | None = None) -> Any:
        transport = self._require_transport()
        return await self.execute(lambda: _body_of(transport.delete(url)), options)
