"""Clock abstraction for delays and timers.

``SystemClock`` sleeps on the asyncio event loop. ``ManualClock`` only moves
when ``advance()`` is awaited, which lets retry and polling behaviour be
tested without real waiting:

    clock = ManualClock()
    controller = PollingController(clock=clock)
    controller.start(task, interval_seconds=1.0)
    await clock.advance(3.0)   # three runs, no wall-clock time spent
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Source of monotonic time and suspension."""

    def now(self) -> float:
        """Monotonic time in seconds."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for ``seconds``."""
        ...


class SystemClock:
    """Clock backed by ``time.monotonic`` and ``asyncio.sleep``."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


class ManualClock:
    """Deterministic clock advanced explicitly by the caller.

    Sleepers are woken strictly in deadline order. After each wake-up the
    event loop is given a number of iterations to settle, so work resumed
    by one timer (including new timers it registers) completes before the
    next deadline is considered.
    """

    def __init__(self, start: float = 0.0, *, settle_rounds: int = 50) -> None:
        self._now = start
        self._settle_rounds = settle_rounds
        self._waiters: list[tuple[float, int, asyncio.Future[None]]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        """Number of sleepers still waiting for their deadline."""
        return sum(1 for _, _, fut in self._waiters if not fut.done())

    async def sleep(self, seconds: float) -> None:
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        heapq.heappush(self._waiters, (self._now + seconds, next(self._seq), fut))
        await fut

    async def advance(self, seconds: float) -> None:
        """Move time forward, waking every sleeper whose deadline passes."""
        if seconds < 0:
            raise ValueError("cannot advance a clock backwards")
        target = self._now + seconds
        await self.settle()
        while self._waiters and self._waiters[0][0] <= target:
            deadline, _, fut = heapq.heappop(self._waiters)
            if fut.done():
                continue
            self._now = max(self._now, deadline)
            fut.set_result(None)
            await self.settle()
        self._now = target
        await self.settle()

    async def settle(self) -> None:
        """Let ready tasks run without moving time."""
        for _ in range(self._settle_rounds):
            await asyncio.sleep(0)
