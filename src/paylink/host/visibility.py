"""Host visibility signal (foreground/background).

The host tells paylink whether its UI is currently visible. Polling pauses
while hidden and catches up as soon as the host becomes visible again.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol, runtime_checkable

from paylink.core.logging import get_logger

_logger = get_logger("host.visibility")

VisibilityListener = Callable[[bool], None]


@runtime_checkable
class VisibilitySource(Protocol):
    """Read access to the host's visibility plus change notifications."""

    @property
    def visible(self) -> bool: ...

    def subscribe(self, listener: VisibilityListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        ...


class AlwaysVisible:
    """Visibility source for hosts without a background state (CLIs, services)."""

    @property
    def visible(self) -> bool:
        return True

    def subscribe(self, listener: VisibilityListener) -> Callable[[], None]:
        return lambda: None


class VisibilityState:
    """Host-driven visibility flag.

    The host calls ``set_visible`` (or ``hide``/``show``) from its own event
    handlers; listeners are notified only on actual changes.
    """

    def __init__(self, visible: bool = True) -> None:
        self._visible = visible
        self._listeners: list[VisibilityListener] = []

    @property
    def visible(self) -> bool:
        return self._visible

    def subscribe(self, listener: VisibilityListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_visible(self, visible: bool) -> None:
        if visible == self._visible:
            return
        self._visible = visible
        _logger.debug("visibility.changed", visible=visible, listeners=len(self._listeners))
        for listener in list(self._listeners):
            listener(visible)

    def hide(self) -> None:
        self.set_visible(False)

    def show(self) -> None:
        self.set_visible(True)
