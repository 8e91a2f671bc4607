"""Scheduler implementations for timed phase transitions."""

import asyncio
import heapq
import itertools
from typing import Callable

from .interfaces import Scheduler, TimerHandle


class AsyncioScheduler(Scheduler):
    """Schedules callbacks on an asyncio event loop.

    Without an explicit loop the running loop at call time is used, so the
    scheduler can be created outside of a coroutine.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class ManualTimer(TimerHandle):

    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler(Scheduler):
    """Virtual clock. Timers only fire when advance() moves time forward."""

    def __init__(self):
        self.now = 0.0
        self._timers = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self.now + delay, callback)
        heapq.heappush(self._timers, (timer.due, next(self._counter), timer))
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for _, _, timer in self._timers if not timer.cancelled)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due timers in order."""
        target = self.now + seconds
        while self._timers and self._timers[0][0] <= target:
            due, _, timer = heapq.heappop(self._timers)
            self.now = due
            if not timer.cancelled:
                timer.callback()
        self.now = target

    def run_all(self) -> None:
        """Fire every pending timer, including ones scheduled while running."""
        while self._timers:
            due, _, timer = heapq.heappop(self._timers)
            self.now = max(self.now, due)
            if not timer.cancelled:
                timer.callback()
