"""Structured logging infrastructure for paylink.

Provides structured logging using structlog with request-specific context
such as request_id and generation. Supports console and JSON output, with an
optional rotating log file.

Example usage:
    from paylink.core.logging import get_logger, configure_logging, with_context

    # Configure once at startup
    configure_logging(level="DEBUG", format="console")

    # Get a component-specific logger
    logger = get_logger("lifecycle")

    # Log with structured fields
    logger.info("request.started", generation=3)

    # Correlate everything logged while a request is in flight
    ctx = RequestContext(component="lifecycle", generation=3)
    with with_context(ctx):
        logger.debug("request.completed")  # includes request_id, generation
"""

from __future__ import annotations

import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Literal

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Sensitive field patterns that should never be logged
SENSITIVE_PATTERNS = frozenset({
    "api_key",
    "apikey",
    "token",
    "secret",
    "password",
    "credential",
    "bearer",
    "authorization",
    "cookie",
})


@dataclass(frozen=True)
class RequestContext:
    """Immutable context for correlating log entries of one logical request.

    Attributes:
        request_id: Unique identifier of the logical request.
        component: Component issuing the request (e.g. "lifecycle", "polling").
        generation: Generation token of the request within its manager.
    """

    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    component: str = "unknown"
    generation: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for logging (None values dropped)."""
        result: dict[str, Any] = {
            "request_id": self.request_id,
            "component": self.component,
        }
        if self.generation is not None:
            result["generation"] = self.generation
        return result


# ContextVar keeps the context isolated per asyncio task
_current_context: ContextVar[RequestContext | None] = ContextVar(
    "paylink_context", default=None
)


def get_current_context() -> RequestContext | None:
    """Get the current RequestContext if set."""
    return _current_context.get()


@contextmanager
def with_context(ctx: RequestContext) -> Iterator[RequestContext]:
    """Set the RequestContext for the duration of a block.

    Args:
        ctx: The RequestContext to use for the block.

    Yields:
        The RequestContext that was set.
    """
    token = _current_context.set(ctx)
    try:
        yield ctx
    finally:
        _current_context.reset(token)


def _sanitize_value(key: str, value: Any) -> Any:
    key_lower = key.lower()
    for pattern in SENSITIVE_PATTERNS:
        if pattern in key_lower:
            return "[REDACTED]"
    return value


def _sanitize_event_dict(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that redacts sensitive fields, one level deep."""
    sanitized: EventDict = {}
    for key, value in event_dict.items():
        if isinstance(value, dict):
            sanitized[key] = {k: _sanitize_value(k, v) for k, v in value.items()}
        else:
            sanitized[key] = _sanitize_value(key, value)
    return sanitized


def _add_timestamp(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that adds an ISO8601 UTC timestamp."""
    event_dict["timestamp"] = datetime.now(UTC).isoformat()
    return event_dict


def _add_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that merges the current RequestContext.

    Explicitly bound fields take precedence over context fields.
    """
    ctx = get_current_context()
    if ctx is not None:
        for key, value in ctx.to_dict().items():
            if key not in event_dict:
                event_dict[key] = value
    return event_dict


class PaylinkLogger:
    """Component logger wrapper around structlog.

    The underlying structlog logger is fetched on every call, so loggers
    created at import time still honour a later configure_logging().
    """

    def __init__(self, component: str, **initial_context: Any) -> None:
        self._component = component
        self._context: dict[str, Any] = {"component": component, **initial_context}

    def _get_logger(self) -> structlog.stdlib.BoundLogger:
        logger: structlog.stdlib.BoundLogger = structlog.get_logger().bind(**self._context)
        return logger

    def bind(self, **context: Any) -> PaylinkLogger:
        """Create a new logger with additional bound context."""
        new_logger = PaylinkLogger.__new__(PaylinkLogger)
        new_logger._component = self._component
        new_logger._context = {**self._context, **context}
        return new_logger

    def debug(self, event: str, **kw: Any) -> None:
        self._get_logger().debug(event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._get_logger().info(event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._get_logger().warning(event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._get_logger().error(event, **kw)

    def exception(self, event: str, **kw: Any) -> None:
        """Log an exception with traceback; call from an exception handler."""
        self._get_logger().exception(event, **kw)


def _build_processors(renderer: Processor, include_timestamps: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        _sanitize_event_dict,
        _add_context,
    ]
    if include_timestamps:
        processors.append(_add_timestamp)
    processors.extend([
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        renderer,
    ])
    return processors


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO",
    format: Literal["json", "console"] = "console",  # noqa: A002
    file_path: Path | None = None,
    max_file_size_mb: int = 10,
    backup_count: int = 3,
    include_timestamps: bool = True,
) -> None:
    """Configure paylink structured logging.

    Call once at application startup.

    Args:
        level: Minimum log level to capture.
        format: "console" for human-readable output on stderr, "json" for
            one JSON object per line.
        file_path: Optional rotating log file, written in addition to stderr.
        max_file_size_mb: Maximum log file size before rotation (MB).
        backup_count: Number of rotated log files to keep.
        include_timestamps: Whether to add ISO8601 timestamps.
    """
    log_level = getattr(logging, level)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if file_path is not None:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                file_path,
                maxBytes=max_file_size_mb * 1024 * 1024,
                backupCount=backup_count,
                encoding="utf-8",
            )
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        handler.setLevel(log_level)
        root_logger.addHandler(handler)

    renderer: Processor
    if format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=file_path is None)

    structlog.configure(
        processors=_build_processors(renderer, include_timestamps),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(component: str, **initial_context: Any) -> PaylinkLogger:
    """Get a paylink logger for a component (e.g. "retry", "polling")."""
    return PaylinkLogger(component, **initial_context)


__all__ = [
    "PaylinkLogger",
    "RequestContext",
    "SENSITIVE_PATTERNS",
    "configure_logging",
    "get_current_context",
    "get_logger",
    "with_context",
]
