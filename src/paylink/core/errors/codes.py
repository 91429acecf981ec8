"""Error categories, UI severities and transport codes.

Error Category Taxonomy
=======================

Every failure reported by the transport maps to exactly one category.
The category decides whether a retry is offered and how the failure is
presented.

    | Category   | Trigger                                 | Retryable | Severity |
    |------------|-----------------------------------------|-----------|----------|
    | NETWORK    | no response, connectivity code          | Yes       | network  |
    | TIMEOUT    | no response, abort/deadline code        | Yes       | network  |
    | AUTH       | HTTP 401, 403                           | No        | error    |
    | VALIDATION | HTTP 400, 422                           | No        | warning  |
    | CONFLICT   | HTTP 409                                | No        | error    |
    | NOT_FOUND  | HTTP 404                                | No        | error    |
    | RATE_LIMIT | HTTP 429                                | Yes       | error    |
    | SERVER     | HTTP >= 500                             | Yes       | error    |
    | UNKNOWN    | anything else (including cancellation) | No        | error    |
"""

from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    """High-level category of a failed request."""

    NETWORK = "network"
    """The server could not be reached."""

    TIMEOUT = "timeout"
    """The transport gave up waiting for a response."""

    AUTH = "auth"
    """Session expired or the caller lacks permission."""

    VALIDATION = "validation"
    """The server rejected the submitted data."""

    CONFLICT = "conflict"
    """The resource already exists or changed concurrently."""

    NOT_FOUND = "not_found"
    """The requested resource does not exist."""

    RATE_LIMIT = "rate_limit"
    """Too many requests; the server asked the client to slow down."""

    SERVER = "server"
    """The server failed while handling the request."""

    UNKNOWN = "unknown"
    """Anything that does not fit the categories above."""


class UISeverity(str, Enum):
    """Presentation hint for how prominently a failure is shown."""

    NETWORK = "network"
    WARNING = "warning"
    ERROR = "error"


RETRYABLE_CATEGORIES: frozenset[ErrorCategory] = frozenset({
    ErrorCategory.NETWORK,
    ErrorCategory.TIMEOUT,
    ErrorCategory.SERVER,
    ErrorCategory.RATE_LIMIT,
})
"""Categories for which a retry affordance is offered."""


# =============================================================================
# Transport codes (reported when no structured response was received)
# =============================================================================

CODE_NETWORK = "ERR_NETWORK"
CODE_TIMEOUT = "ECONNABORTED"
CODE_CANCELED = "ERR_CANCELED"
CODE_CONNECTIVITY_FAILURE = "connectivity-failure"
CODE_DEADLINE_EXCEEDED = "deadline-exceeded"

CONNECTIVITY_CODES: frozenset[str] = frozenset({
    CODE_NETWORK,
    CODE_CONNECTIVITY_FAILURE,
    "ECONNREFUSED",
    "ECONNRESET",
    "ENOTFOUND",
    "EAI_AGAIN",
    "EHOSTUNREACH",
    "ENETUNREACH",
    "EPIPE",
})
"""Codes meaning the server was unreachable."""

DEADLINE_CODES: frozenset[str] = frozenset({
    CODE_TIMEOUT,
    CODE_DEADLINE_EXCEEDED,
    "ETIMEDOUT",
    "ERR_TIMEOUT",
})
"""Codes meaning the transport aborted the request at its deadline."""

AUTH_STATUSES: frozenset[int] = frozenset({401, 403})
VALIDATION_STATUSES: frozenset[int] = frozenset({400, 422})
STATUS_CONFLICT = 409
STATUS_NOT_FOUND = 404
STATUS_RATE_LIMITED = 429
STATUS_SERVER_ERROR_MIN = 500
