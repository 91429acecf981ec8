"""Retry and polling configuration models.

Defines models for retry/backoff behaviour and visibility-aware polling.
All durations are in seconds.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from paylink.core.constants import (
    DEFAULT_BASE_DELAY_SECONDS,
    DEFAULT_MAX_DELAY_SECONDS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_RETRY_MESSAGE,
)


class RetryConfig(BaseModel):
    """Configuration for retry behaviour with exponential backoff."""

    max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES,
        ge=0,
        description="Retries after the first failure (0 = call exactly once)",
    )
    base_delay_seconds: float = Field(
        default=DEFAULT_BASE_DELAY_SECONDS,
        ge=0,
        description="Delay before the first retry; doubled for each further attempt",
    )
    max_delay_seconds: float = Field(
        default=DEFAULT_MAX_DELAY_SECONDS,
        ge=0,
        description="Upper bound for a single backoff delay",
    )
    auto_retry: bool = Field(
        default=False,
        description="Retry retryable failures automatically instead of waiting for the user",
    )
    retry_message: str = Field(
        default=DEFAULT_RETRY_MESSAGE,
        description="Message exposed while an automatic retry is pending",
    )

    @model_validator(mode="after")
    def _validate_delay_range(self) -> RetryConfig:
        if self.base_delay_seconds > self.max_delay_seconds:
            raise ValueError(
                f"base_delay_seconds ({self.base_delay_seconds}) must not exceed "
                f"max_delay_seconds ({self.max_delay_seconds})"
            )
        return self


class PollingConfig(BaseModel):
    """Configuration for background refresh polling.

    Example:
        polling:
          interval_seconds: 30
          run_immediately: true
    """

    interval_seconds: float = Field(
        default=DEFAULT_POLL_INTERVAL_SECONDS,
        gt=0,
        description="Seconds between runs, measured from the previous run",
    )
    run_immediately: bool = Field(
        default=False,
        description="Run once on start instead of waiting a full interval",
    )
