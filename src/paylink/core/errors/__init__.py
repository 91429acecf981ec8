"""Error classification and handling.

Re-exports all public symbols.
"""

from paylink.core.errors.codes import (
    CODE_CANCELED,
    CODE_CONNECTIVITY_FAILURE,
    CODE_DEADLINE_EXCEEDED,
    CODE_NETWORK,
    CODE_TIMEOUT,
    CONNECTIVITY_CODES,
    DEADLINE_CODES,
    RETRYABLE_CATEGORIES,
    ErrorCategory,
    UISeverity,
)
from paylink.core.errors.models import (
    ClassifiedError,
    HttpResponse,
    PaylinkError,
    ResponseError,
    TransportError,
)
from paylink.core.errors.classifier import (
    ErrorClassifier,
    classify,
    classify_error,
    field_errors,
    is_retryable,
    is_retryable_error,
    message,
    ui_severity,
)

__all__ = [
    "CODE_CANCELED",
    "CODE_CONNECTIVITY_FAILURE",
    "CODE_DEADLINE_EXCEEDED",
    "CODE_NETWORK",
    "CODE_TIMEOUT",
    "CONNECTIVITY_CODES",
    "DEADLINE_CODES",
    "RETRYABLE_CATEGORIES",
    "ErrorCategory",
    "UISeverity",
    "ClassifiedError",
    "HttpResponse",
    "PaylinkError",
    "ResponseError",
    "TransportError",
    "ErrorClassifier",
    "classify",
    "classify_error",
    "field_errors",
    "is_retryable",
    "is_retryable_error",
    "message",
    "ui_severity",
]
