"""Exponential backoff with jitter.

    exponential = base * 2 ** (attempt - 1)
    jitter      = uniform(0, 0.3 * exponential)
    delay       = min(exponential + jitter, cap)

The result is always finite, non-negative and never above ``cap``; for the
first attempt it is never below ``base`` (as long as ``base <= cap``).
Jitter spreads retries of many clients apart so they do not hit a
recovering server at the same instant.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field

from paylink.core.config import RetryConfig
from paylink.core.constants import (
    BACKOFF_JITTER_RATIO,
    BACKOFF_MAX_EXPONENT,
    DEFAULT_BASE_DELAY_SECONDS,
    DEFAULT_MAX_DELAY_SECONDS,
)


def _non_negative(value: float) -> float:
    if math.isnan(value) or value < 0:
        return 0.0
    return value


def compute_backoff_delay(
    attempt: int,
    base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
    max_delay: float = DEFAULT_MAX_DELAY_SECONDS,
    *,
    rng: random.Random | None = None,
) -> float:
    """Delay in seconds before retry number ``attempt`` (1-based).

    Attempts below 1 are treated as 1. Never raises.

    Args:
        attempt: Retry attempt number, starting at 1.
        base_delay: Delay for the first attempt before jitter.
        max_delay: Hard cap for the returned delay.
        rng: Random source for the jitter; the module RNG when omitted.
    """
    base = _non_negative(base_delay)
    cap = _non_negative(max_delay)
    exponent = min(max(attempt, 1) - 1, BACKOFF_MAX_EXPONENT)

    exponential = base * (2 ** exponent)
    if not math.isfinite(exponential):
        return cap if math.isfinite(cap) else 0.0

    uniform = (rng or random).random()
    jitter = uniform * BACKOFF_JITTER_RATIO * exponential
    return min(exponential + jitter, cap)


@dataclass
class BackoffPolicy:
    """Backoff parameters bound together, producing one delay per attempt."""

    base_delay: float = DEFAULT_BASE_DELAY_SECONDS
    max_delay: float = DEFAULT_MAX_DELAY_SECONDS
    rng: random.Random | None = field(default=None, repr=False)

    @classmethod
    def from_config(cls, config: RetryConfig, rng: random.Random | None = None) -> BackoffPolicy:
        return cls(
            base_delay=config.base_delay_seconds,
            max_delay=config.max_delay_seconds,
            rng=rng,
        )

    def delay(self, attempt: int) -> float:
        return compute_backoff_delay(attempt, self.base_delay, self.max_delay, rng=self.rng)
