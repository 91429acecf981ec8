"""Global constants for paylink.

Centralizes the default timings used by the retry, polling and transport
layers so configuration models and components agree on them.
"""

# =============================================================================
# Retry / Backoff Defaults
# =============================================================================

DEFAULT_MAX_RETRIES = 3
"""Retry attempts after the first failure (total calls = max_retries + 1)."""

DEFAULT_BASE_DELAY_SECONDS = 1.0
"""Delay before the first retry, doubled on each following attempt."""

DEFAULT_MAX_DELAY_SECONDS = 10.0
"""Upper bound for any single backoff delay."""

BACKOFF_JITTER_RATIO = 0.3
"""Jitter is drawn uniformly from [0, ratio * exponential delay]."""

BACKOFF_MAX_EXPONENT = 64
"""Doubling stops here; larger attempts saturate at the delay cap."""

DEFAULT_RETRY_MESSAGE = "Connection issue detected. Retrying..."
"""Message exposed on the request state while an automatic retry is pending."""

COUNTDOWN_TICK_SECONDS = 1.0
"""Granularity of the presentational retry countdown."""

# =============================================================================
# Polling Defaults
# =============================================================================

DEFAULT_POLL_INTERVAL_SECONDS = 30.0
"""Interval between background refreshes of dashboard data."""

# =============================================================================
# Transport Defaults
# =============================================================================

DEFAULT_BASE_URL = "http://localhost:5001/api"
"""Base URL of the payroll backend API."""

DEFAULT_REQUEST_TIMEOUT_SECONDS = 15.0
"""Transport-level timeout; expiry is reported as a TIMEOUT failure."""

# =============================================================================
# Duration Formatting Constants
# =============================================================================

SECONDS_PER_MINUTE = 60
"""Seconds in one minute, for duration formatting."""
