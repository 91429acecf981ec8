"""Transport boundary: the HTTP client paylink drives but does not implement."""

from paylink.transport.base import Transport
from paylink.transport.httpx_transport import HttpxTransport

__all__ = ["HttpxTransport", "Transport"]
