"""Shared utilities for paylink.

Contains cross-cutting utilities used by multiple modules.
"""

from paylink.utils.time import format_duration, utc_now

__all__ = ["format_duration", "utc_now"]
