"""HTTP transport implementation using httpx.

Wraps an ``httpx.AsyncClient`` configured for the payroll backend (base URL,
timeout, JSON headers), attaches the bearer token on every request, and
translates httpx failures into paylink's transport error shapes.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx

from paylink.core.config import TransportConfig
from paylink.core.errors import (
    CODE_NETWORK,
    CODE_TIMEOUT,
    HttpResponse,
    ResponseError,
    TransportError,
)
from paylink.core.logging import get_logger

_logger = get_logger("transport.httpx")

CODE_BAD_RESPONSE = "ERR_BAD_RESPONSE"

TokenProvider = Callable[[], str | None]
UnauthorizedHook = Callable[[str], None]


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text


class HttpxTransport:
    """Transport backed by ``httpx.AsyncClient``.

    Example usage:
        transport = HttpxTransport(
            TransportConfig(base_url="https://payroll.example.com/api"),
            token_provider=session.token,
            on_unauthorized=lambda url: session.clear(),
        )
        response = await transport.get("/employees")

    Args:
        config: Base URL, timeout and default headers.
        token_provider: Returns the current bearer token, or None when logged out.
        on_unauthorized: Called with the request URL when the server answers 401.
        transport: Optional httpx transport (e.g. ``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        config: TransportConfig | None = None,
        *,
        token_provider: TokenProvider | None = None,
        on_unauthorized: UnauthorizedHook | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or TransportConfig()
        self._token_provider = token_provider
        self._on_unauthorized = on_unauthorized
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the pooled HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._config.base_url,
                timeout=httpx.Timeout(self._config.timeout_seconds),
                headers=self._config.headers,
                transport=self._transport,
            )
        return self._client

    def _auth_headers(self) -> dict[str, str]:
        token = self._token_provider() if self._token_provider is not None else None
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> HttpResponse:
        """Perform one request.

        Raises:
            TransportError: No response (timeout, connectivity, bad response).
            ResponseError: The server answered with a 4xx/5xx status.
        """
        client = self._get_client()
        try:
            response = await client.request(
                method.upper(),
                url,
                json=json,
                params=params,
                headers=self._auth_headers(),
            )
        except httpx.TimeoutException as e:
            _logger.debug("transport.timeout", method=method, url=url)
            raise TransportError(CODE_TIMEOUT, "request timed out") from e
        except httpx.TransportError as e:
            _logger.debug("transport.network_error", method=method, url=url, error=str(e))
            raise TransportError(CODE_NETWORK, str(e) or "network error") from e
        except httpx.RequestError as e:
            raise TransportError(CODE_BAD_RESPONSE, str(e) or "bad response") from e

        result = HttpResponse(
            status=response.status_code,
            body=_decode_body(response),
            headers={k.lower(): v for k, v in response.headers.items()},
        )
        if response.status_code == 401 and self._on_unauthorized is not None:
            self._on_unauthorized(url)
        if response.is_error:
            _logger.debug("transport.error_status", method=method, url=url, status=result.status)
            raise ResponseError(result)
        return result

    async def get(self, url: str, *, params: dict[str, Any] | None = None) -> HttpResponse:
        return await self.request("GET", url, params=params)

    async def post(self, url: str, json: Any = None) -> HttpResponse:
        return await self.request("POST", url, json=json)

    async def put(self, url: str, json: Any = None) -> HttpResponse:
        return await self.request("PUT", url, json=json)

    async def delete(self, url: str) -> HttpResponse:
        return await self.request("DELETE", url)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
