"""Host environment abstractions: time and foreground/background visibility.

Components take a ``Clock`` and a ``VisibilitySource`` by injection so that
production code runs on asyncio time while tests drive a ``ManualClock``.
"""

from paylink.host.clock import Clock, ManualClock, SystemClock
from paylink.host.visibility import AlwaysVisible, VisibilitySource, VisibilityState

__all__ = [
    "AlwaysVisible",
    "Clock",
    "ManualClock",
    "SystemClock",
    "VisibilitySource",
    "VisibilityState",
]
