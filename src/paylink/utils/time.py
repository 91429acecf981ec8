"""Time utilities for paylink.

Provides timezone-aware timestamps and compact duration formatting for
retry countdowns.
"""

import math
from datetime import UTC, datetime

from paylink.core.constants import SECONDS_PER_MINUTE


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


def format_duration(seconds: float) -> str:
    """Format a delay for display, e.g. ``"45s"`` or ``"2m 5s"``.

    Fractional seconds are rounded up so a pending wait never shows as zero.
    """
    total = max(0, math.ceil(seconds))
    if total < SECONDS_PER_MINUTE:
        return f"{total}s"
    minutes, remaining = divmod(total, SECONDS_PER_MINUTE)
    return f"{minutes}m {remaining}s"
