"""Transport protocol consumed by the request lifecycle layer.

A transport performs one HTTP request and either returns an ``HttpResponse``
or raises:

- ``TransportError(code)`` when no structured response was received
  (connectivity failure, deadline, cancellation), or
- ``ResponseError(HttpResponse)`` when the server answered with an error status.

Cancellation is cooperative: cancelling the asyncio task awaiting
``request()`` must abort the underlying I/O.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from paylink.core.errors import HttpResponse


@runtime_checkable
class Transport(Protocol):
    """Asynchronous HTTP-style client."""

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> HttpResponse: ...

    async def get(self, url: str, *, params: dict[str, Any] | None = None) -> HttpResponse: ...

    async def post(self, url: str, json: Any = None) -> HttpResponse: ...

    async def put(self, url: str, json: Any = None) -> HttpResponse: ...

    async def delete(self, url: str) -> HttpResponse: ...
