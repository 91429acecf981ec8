"""Data models for request failures and their classification.

This module provides:
- HttpResponse: the structured ``{status, body}`` part of a response
- PaylinkError / TransportError / ResponseError: exceptions raised by transports
- ClassifiedError: a failure with its category and derived presentation data
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from .codes import CODE_CANCELED, ErrorCategory, UISeverity


@dataclass(frozen=True)
class HttpResponse:
    """Status and decoded body of an HTTP response.

    Attributes:
        status: HTTP status code.
        body: Decoded JSON body, raw text, or None when empty.
        headers: Response headers (lower-cased names).
    """

    status: int
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 400


class PaylinkError(Exception):
    """Base exception for all paylink request failures."""


class TransportError(PaylinkError):
    """The request failed before a structured response was received.

    ``code`` identifies the transport failure (see ``codes.CONNECTIVITY_CODES``
    and ``codes.DEADLINE_CODES``).
    """

    response: HttpResponse | None = None

    def __init__(self, code: str, message: str = "") -> None:
        super().__init__(message or code)
        self.code = code

    @property
    def is_cancellation(self) -> bool:
        """True when the transport reports that the request was aborted by us."""
        return self.code == CODE_CANCELED


class ResponseError(PaylinkError):
    """The server answered with an error status."""

    code: str | None = None

    def __init__(self, response: HttpResponse, message: str = "") -> None:
        super().__init__(message or f"request failed with status {response.status}")
        self.response = response

    @property
    def status(self) -> int:
        return self.response.status


@dataclass(frozen=True)
class ClassifiedError:
    """A request failure with its category and derived presentation data.

    Built by ``ErrorClassifier.classify_error``; never mutated afterwards.
    """

    category: ErrorCategory
    message: str
    retryable: bool
    severity: UISeverity
    status_code: int | None = None
    field_errors: Mapping[str, Any] = field(default_factory=dict, hash=False)
    original_error: Any = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        # Freeze the mapping so the instance stays immutable
        object.__setattr__(self, "field_errors", MappingProxyType(dict(self.field_errors)))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "category": self.category.value,
            "message": self.message,
            "retryable": self.retryable,
            "severity": self.severity.value,
            "status_code": self.status_code,
            "field_errors": dict(self.field_errors),
        }
