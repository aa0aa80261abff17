"""
Scheduling Primitives

All deferred work in the tracker (debounced search, throttled scroll
handling, periodic cache sweeps) runs through a Scheduler. Two
implementations exist:

- AsyncioScheduler: timers on the running asyncio event loop
- ManualScheduler: a virtual clock advanced explicitly, for tests and
  deterministic runs

Each wrapper keeps a single pending-timer slot so cancellation is a matter
of cancelling that one handle.
"""

import asyncio
import heapq
import itertools
import logging
from typing import Any, Callable, List, Optional, Protocol, Tuple


logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Minimal timer interface shared by both implementations."""

    def now(self) -> float:
        """Monotonic time in seconds."""
        ...

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle:
        ...


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay), callback)


class _ManualHandle:
    def __init__(self):
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Virtual-clock scheduler.

    Timers fire only when ``advance`` moves the clock past their deadline,
    in deadline order (ties in scheduling order).
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._counter = itertools.count()
        self._queue: List[Tuple[float, int, _ManualHandle, Callable[[], Any]]] = []

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], Any]) -> _ManualHandle:
        handle = _ManualHandle()
        deadline = self._now + max(0.0, delay)
        heapq.heappush(self._queue, (deadline, next(self._counter), handle, callback))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle, _ in self._queue if not handle.cancelled)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every timer that comes due."""
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            deadline, _, handle, callback = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = deadline
            callback()
        self._now = target


class Debouncer:
    """
    Collapse bursts of triggers into one call after a quiet period.

    Only the arguments of the last trigger are used.
    """

    def __init__(self, scheduler: Scheduler, wait_seconds: float, func: Callable[..., Any]):
        self._scheduler = scheduler
        self.wait_seconds = wait_seconds
        self._func = func
        self._handle: Optional[TimerHandle] = None
        self._args: Tuple[Any, ...] = ()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self, *args: Any) -> None:
        self.cancel()
        self._args = args
        self._handle = self._scheduler.call_later(self.wait_seconds, self._fire)

    def flush(self) -> None:
        """Run the pending call now, if there is one."""
        if self._handle is not None:
            self._handle.cancel()
            self._fire()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        args, self._args = self._args, ()
        try:
            self._func(*args)
        except Exception as e:
            logger.error(f"Debounced call failed - error={str(e)}", exc_info=True)


class Throttler:
    """
    Run at most once per ``limit_seconds``.

    The first trigger runs immediately; triggers inside the window are
    coalesced into one trailing run with the latest arguments.
    """

    def __init__(self, scheduler: Scheduler, limit_seconds: float, func: Callable[..., Any]):
        self._scheduler = scheduler
        self.limit_seconds = limit_seconds
        self._func = func
        self._last_ran: Optional[float] = None
        self._handle: Optional[TimerHandle] = None
        self._args: Tuple[Any, ...] = ()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self, *args: Any) -> None:
        now = self._scheduler.now()
        if self._last_ran is None or now - self._last_ran >= self.limit_seconds:
            self.cancel()
            self._run(args)
            return

        self._args = args
        if self._handle is None:
            delay = self.limit_seconds - (now - self._last_ran)
            self._handle = self._scheduler.call_later(delay, self._trailing)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _trailing(self) -> None:
        self._handle = None
        args, self._args = self._args, ()
        self._run(args)

    def _run(self, args: Tuple[Any, ...]) -> None:
        self._last_ran = self._scheduler.now()
        try:
            self._func(*args)
        except Exception as e:
            logger.error(f"Throttled call failed - error={str(e)}", exc_info=True)


class PeriodicTask:
    """Repeating timer. ``stop`` releases the scheduling handle."""

    def __init__(self, scheduler: Scheduler, interval_seconds: float, func: Callable[[], Any]):
        self._scheduler = scheduler
        self.interval_seconds = interval_seconds
        self._func = func
        self._handle: Optional[TimerHandle] = None

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        if self._handle is None:
            self._schedule()

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _schedule(self) -> None:
        self._handle = self._scheduler.call_later(self.interval_seconds, self._tick)

    def _tick(self) -> None:
        self._schedule()
        try:
            self._func()
        except Exception as e:
            logger.error(f"Periodic task failed - error={str(e)}", exc_info=True)
