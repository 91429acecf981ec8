"""Error classification for request failures.

Maps whatever the transport raised (paylink transport errors, httpx
exceptions, builtin connection/timeout errors, or plain mappings such as
``{"status": 401}``) to an ``ErrorCategory``, and derives the user-facing
message, UI severity, retryability and field errors from it.

Every function here is pure: the result depends only on the shape of the
error, and nothing raises.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from .codes import (
    AUTH_STATUSES,
    CODE_NETWORK,
    CODE_TIMEOUT,
    CONNECTIVITY_CODES,
    DEADLINE_CODES,
    RETRYABLE_CATEGORIES,
    STATUS_CONFLICT,
    STATUS_NOT_FOUND,
    STATUS_RATE_LIMITED,
    STATUS_SERVER_ERROR_MIN,
    VALIDATION_STATUSES,
    ErrorCategory,
    UISeverity,
)
from .models import ClassifiedError, HttpResponse

# =============================================================================
# Default user-facing messages.
# None of these may contain a status code or transport code.
# =============================================================================

_SESSION_EXPIRED_MESSAGE = "Your session has expired. Please log in again."

_DEFAULT_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.NETWORK: (
        "Unable to connect to the server. "
        "Please check your internet connection and try again."
    ),
    ErrorCategory.TIMEOUT: "The request timed out. Please check your connection and try again.",
    ErrorCategory.AUTH: "You do not have permission to perform this action.",
    ErrorCategory.VALIDATION: "Please check your input and try again.",
    ErrorCategory.CONFLICT: "This resource already exists. Please use different values.",
    ErrorCategory.NOT_FOUND: "The requested resource was not found.",
    ErrorCategory.RATE_LIMIT: "Too many requests. Please wait a moment and try again.",
    ErrorCategory.SERVER: "The server encountered an error. Please try again later.",
    ErrorCategory.UNKNOWN: "An unexpected error occurred. Please try again.",
}

# Categories whose message prefers the text supplied by the server
_SERVER_MESSAGE_CATEGORIES = frozenset({
    ErrorCategory.AUTH,
    ErrorCategory.VALIDATION,
    ErrorCategory.CONFLICT,
    ErrorCategory.NOT_FOUND,
    ErrorCategory.UNKNOWN,
})

_SEVERITIES: dict[ErrorCategory, UISeverity] = {
    ErrorCategory.NETWORK: UISeverity.NETWORK,
    ErrorCategory.TIMEOUT: UISeverity.NETWORK,
    ErrorCategory.VALIDATION: UISeverity.WARNING,
}


@dataclass(frozen=True)
class _ErrorShape:
    """The parts of an error that classification looks at."""

    status: int | None = None
    body: Any = None
    code: str | None = None


def _decode_httpx_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except (ValueError, httpx.ResponseNotRead):
        return None


def _coerce_status(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _coerce_code(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _shape_from_response(response: Any) -> tuple[int | None, Any]:
    if response is None:
        return None, None
    if isinstance(response, HttpResponse):
        return response.status, response.body
    if isinstance(response, httpx.Response):
        return response.status_code, _decode_httpx_body(response)
    if isinstance(response, Mapping):
        body = response.get("body", response.get("data"))
        return _coerce_status(response.get("status")), body
    status = getattr(response, "status", None)
    if status is None:
        status = getattr(response, "status_code", None)
    body = getattr(response, "body", None)
    if body is None:
        body = getattr(response, "data", None)
    return _coerce_status(status), body


def _shape_of(error: Any) -> _ErrorShape:
    if error is None:
        return _ErrorShape()

    if isinstance(error, Mapping):
        status, body = _shape_from_response(error.get("response"))
        if status is None and "status" in error:
            status = _coerce_status(error.get("status"))
            body = error.get("body", error.get("data"))
        return _ErrorShape(status=status, body=body, code=_coerce_code(error.get("code")))

    if isinstance(error, httpx.HTTPStatusError):
        status, body = _shape_from_response(error.response)
        return _ErrorShape(status=status, body=body)
    if isinstance(error, httpx.TimeoutException):
        return _ErrorShape(code=CODE_TIMEOUT)
    if isinstance(error, httpx.TransportError):
        return _ErrorShape(code=CODE_NETWORK)

    status, body = _shape_from_response(getattr(error, "response", None))
    code = _coerce_code(getattr(error, "code", None))
    if status is None and code is None:
        # Builtins raised by lower-level clients carry no code of their own
        if isinstance(error, TimeoutError):
            code = CODE_TIMEOUT
        elif isinstance(error, ConnectionError):
            code = CODE_NETWORK
    return _ErrorShape(status=status, body=body, code=code)


def _server_message(shape: _ErrorShape) -> str | None:
    if isinstance(shape.body, Mapping):
        message = shape.body.get("message")
        if isinstance(message, str) and message.strip():
            return message
    return None


def _server_errors(shape: _ErrorShape) -> Any:
    if isinstance(shape.body, Mapping):
        return shape.body.get("errors")
    return None


def _category_of(shape: _ErrorShape) -> ErrorCategory:
    status = shape.status
    if status is None:
        if shape.code in CONNECTIVITY_CODES:
            return ErrorCategory.NETWORK
        if shape.code in DEADLINE_CODES:
            return ErrorCategory.TIMEOUT
        return ErrorCategory.UNKNOWN
    if status in AUTH_STATUSES:
        return ErrorCategory.AUTH
    if status in VALIDATION_STATUSES:
        return ErrorCategory.VALIDATION
    if status == STATUS_CONFLICT:
        return ErrorCategory.CONFLICT
    if status == STATUS_NOT_FOUND:
        return ErrorCategory.NOT_FOUND
    if status == STATUS_RATE_LIMITED:
        return ErrorCategory.RATE_LIMIT
    if status >= STATUS_SERVER_ERROR_MIN:
        return ErrorCategory.SERVER
    return ErrorCategory.UNKNOWN


def classify(error: Any) -> ErrorCategory:
    """Classify a request failure.

    Priority: connectivity code, deadline code (both only without a
    response), then 401/403, 400/422, 409, 404, 429, >=500, else UNKNOWN.
    """
    return _category_of(_shape_of(error))


def is_retryable(category: ErrorCategory) -> bool:
    """Whether failures of this category are worth retrying."""
    return category in RETRYABLE_CATEGORIES


def is_retryable_error(error: Any) -> bool:
    """Whether a retry should be offered for this failure."""
    return is_retryable(classify(error))


def ui_severity(category: ErrorCategory) -> UISeverity:
    """Presentation severity: network, warning or error."""
    return _SEVERITIES.get(category, UISeverity.ERROR)


def field_errors(error: Any) -> dict[str, Any]:
    """Extract per-field validation messages from a failure.

    A list of messages becomes a single ``general`` entry; a field-keyed
    mapping is passed through as-is; a bare server message becomes
    ``general``. Returns an empty dict when the server supplied nothing.
    """
    shape = _shape_of(error)
    errors = _server_errors(shape)
    if isinstance(errors, (list, tuple)):
        return {"general": ", ".join(str(item) for item in errors)}
    if isinstance(errors, Mapping):
        return dict(errors)
    server_message = _server_message(shape)
    if server_message is not None:
        return {"general": server_message}
    return {}


class ErrorClassifier:
    """Builds ``ClassifiedError`` instances from raw request failures.

    The default message table can be overridden per category, e.g. to
    localize the text shown in banners:

        classifier = ErrorClassifier(messages={ErrorCategory.NETWORK: "Offline"})
        classified = classifier.classify_error(exc)
    """

    def __init__(self, messages: Mapping[ErrorCategory, str] | None = None) -> None:
        self._messages = {**_DEFAULT_MESSAGES, **(messages or {})}

    def message(self, error: Any) -> str:
        """Human-readable message for a failure; never contains raw codes."""
        if error is None:
            return self._messages[ErrorCategory.UNKNOWN]
        shape = _shape_of(error)
        category = _category_of(shape)

        if category in _SERVER_MESSAGE_CATEGORIES:
            if category == ErrorCategory.VALIDATION:
                errors = _server_errors(shape)
                if isinstance(errors, (list, tuple)) and errors:
                    return ", ".join(str(item) for item in errors)
            server_message = _server_message(shape)
            if server_message is not None:
                return server_message
            if category == ErrorCategory.AUTH and shape.status == 401:
                return _SESSION_EXPIRED_MESSAGE

        return self._messages[category]

    def classify_error(self, error: Any) -> ClassifiedError:
        """Classify a failure and derive all of its presentation data."""
        shape = _shape_of(error)
        category = _category_of(shape)
        return ClassifiedError(
            category=category,
            message=self.message(error),
            retryable=is_retryable(category),
            severity=ui_severity(category),
            status_code=shape.status,
            field_errors=field_errors(error),
            original_error=error,
        )


_default_classifier = ErrorClassifier()


def message(error: Any) -> str:
    """Human-readable message for a failure using the default message table."""
    return _default_classifier.message(error)


def classify_error(error: Any) -> ClassifiedError:
    """Classify a failure using the default message table."""
    return _default_classifier.classify_error(error)
