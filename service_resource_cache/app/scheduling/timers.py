"""
Timer sources for deferred cache work.

The cache never touches the event loop's clock directly. Everything that has
to happen "later" (evicting an unowned entry, firing an armed prefetch) goes
through a ``Scheduler``:

    handle = scheduler.schedule(delay_ms, callback)
    handle.cancel()

``AsyncioScheduler`` backs this with ``loop.call_later`` for real use.
``ManualScheduler`` keeps a virtual clock that only moves when ``advance`` is
called, which makes grace-period behaviour testable to the millisecond.
"""

import asyncio
import heapq
import itertools
from typing import Callable, List, Optional, Protocol, Tuple


class TimerHandle(Protocol):
    """A scheduled callback that can be cancelled."""

    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Schedules callbacks after a delay in milliseconds."""

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class AsyncioScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, delay_ms) / 1000.0, callback)


# Queue length that triggers dropping cancelled timers from the heap
MIN_COMPACT_SIZE = 64


class ManualTimer:
    """Handle returned by ``ManualScheduler``."""

    def __init__(self, deadline_ms: float, callback: Callable[[], None]):
        self.deadline_ms = deadline_ms
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)


class ManualScheduler:
    """Virtual-clock scheduler for deterministic tests."""

    def __init__(self, start_ms: float = 0.0):
        self.now_ms = start_ms
        self._queue: List[Tuple[float, int, ManualTimer]] = []
        self._sequence = itertools.count()
        self._compact_at = MIN_COMPACT_SIZE

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> ManualTimer:
        self._prune()
        timer = ManualTimer(self.now_ms + max(0.0, delay_ms), callback)
        heapq.heappush(self._queue, (timer.deadline_ms, next(self._sequence), timer))
        return timer

    def advance(self, delta_ms: float) -> int:
        """Move the clock forward, firing every timer that comes due.

        Timers fire in deadline order; ties fire in scheduling order. A
        callback that schedules a new timer inside the window sees it fire
        during the same call. Returns the number of callbacks fired.
        """
        target = self.now_ms + delta_ms
        fired = 0

        while self._queue and self._queue[0][0] <= target:
            deadline, _, timer = heapq.heappop(self._queue)
            if not timer.active:
                continue

            self.now_ms = deadline
            timer.fired = True
            timer.callback()
            fired += 1

        self.now_ms = target
        return fired

    @property
    def pending(self) -> int:
        """Number of timers still waiting to fire."""
        return sum(1 for _, _, timer in self._queue if timer.active)

    @property
    def queued(self) -> int:
        """Heap slots in use, including cancelled timers not yet dropped."""
        return len(self._queue)

    def _prune(self) -> None:
        while self._queue and not self._queue[0][2].active:
            heapq.heappop(self._queue)

        if len(self._queue) >= self._compact_at:
            self._queue = [item for item in self._queue if item[2].active]
            heapq.heapify(self._queue)
            self._compact_at = max(MIN_COMPACT_SIZE, 2 * len(self._queue))
