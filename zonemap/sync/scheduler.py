"""
Deferred task scheduling for the map engine.

The engine never blocks. It only schedules callbacks for later:
- debounce timers (call_later, one per zone id, cancellable)
- guard releases on the next tick (call_soon)

AsyncioScheduler posts to an asyncio event loop. ManualScheduler runs on a
virtual clock advanced by hand, for tests and headless replays of edit
sessions.
"""

import asyncio
import heapq
import itertools
import logging
from typing import Any, Callable, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class TaskHandle(Protocol):
    """A scheduled callback that can be cancelled."""

    def cancel(self) -> None:
        ...

    def cancelled(self) -> bool:
        ...


class Scheduler(Protocol):
    """Single logical timer queue."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TaskHandle:
        ...

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> TaskHandle:
        ...


class AsyncioScheduler:
    """
    Scheduler backed by an asyncio event loop.

    asyncio.TimerHandle and asyncio.Handle already satisfy TaskHandle.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback, *args)

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> asyncio.Handle:
        return self.loop.call_soon(callback, *args)


class ManualTask:
    """Task queued on a ManualScheduler."""

    def __init__(self, due: float, callback: Callable[..., Any], args: Tuple[Any, ...]):
        self.due = due
        self.callback = callback
        self.args = args
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled

    def run(self) -> None:
        self.callback(*self.args)


class ManualScheduler:
    """
    Virtual clock scheduler.

    Tasks run in (due time, insertion order). call_soon tasks are due at the
    current time, so they run on the next run_pending()/advance() call and
    never synchronously.

    Usage:
        scheduler = ManualScheduler()
        scheduler.call_later(0.15, commit, "zone_a")
        scheduler.advance(0.2)   # runs commit("zone_a")
    """

    def __init__(self):
        self._now = 0.0
        self._seq = itertools.count()
        self._queue: List[Tuple[float, int, ManualTask]] = []

    @property
    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ManualTask:
        task = ManualTask(self._now + max(delay, 0.0), callback, args)
        heapq.heappush(self._queue, (task.due, next(self._seq), task))
        return task

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> ManualTask:
        return self.call_later(0.0, callback, *args)

    @property
    def pending(self) -> int:
        """Number of queued tasks that are not cancelled."""
        return sum(1 for _, _, task in self._queue if not task.cancelled())

    def run_pending(self) -> int:
        """Run every task due at the current time, including ones they schedule."""
        return self.advance(0.0)

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, running due tasks in order.

        Returns:
            Number of tasks run
        """
        target = self._now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, task = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            if task.cancelled():
                continue
            task.run()
            ran += 1
        self._now = target
        return ran
