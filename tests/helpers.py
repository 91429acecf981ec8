"""Shared test helpers for paylink tests."""

from typing import Any

from paylink.core.errors import HttpResponse, ResponseError, TransportError


def network_error() -> TransportError:
    """Failure without a response: network unreachable."""
    return TransportError("ERR_NETWORK", "Network Error")


def timeout_error() -> TransportError:
    """Failure without a response: transport deadline expired."""
    return TransportError("ECONNABORTED", "timeout of 15000ms exceeded")


def response_error(status: int, body: Any = None) -> ResponseError:
    """Failure with an HTTP response."""
    return ResponseError(HttpResponse(status=status, body=body))


class FlakyOperation:
    """Async operation failing with queued errors before returning a value.

    Each call pops the next item of ``outcomes``; exceptions are raised,
    anything else is returned. Once exhausted, ``default`` is returned.
    """

    def __init__(self, *outcomes: Any, default: Any = "ok") -> None:
        self.outcomes = list(outcomes)
        self.default = default
        self.calls = 0

    async def __call__(self) -> Any:
        self.calls += 1
        if not self.outcomes:
            return self.default
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome
