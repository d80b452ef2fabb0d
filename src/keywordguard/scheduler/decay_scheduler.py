"""
Delayed-callback schedulers used for violation decay.

The violation tracker only needs two things from a scheduler: the current
time and a way to run a callback later that can be cancelled. Production code
uses :class:`LoopScheduler`, which delegates to the running asyncio loop.
:class:`ManualScheduler` keeps a virtual clock that only moves when told to,
so a 24 hour decay window can be exercised instantly.
"""
from __future__ import annotations

import asyncio
import heapq
from typing import Callable, Protocol

from keywordguard.util.logger import get_logger

logger = get_logger("decay_scheduler")


class ScheduledHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Clock plus delayed callbacks."""

    def now(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledHandle: ...


class LoopScheduler:
    """Scheduler backed by the running asyncio event loop.

    Callbacks run on the loop thread between tasks, so they never interleave
    with synchronous tracker code.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback)


class ManualHandle:
    """Handle returned by :class:`ManualScheduler`; cancelling twice is harmless."""

    __slots__ = ("job_id", "run_at", "cancelled", "_scheduler")

    def __init__(self, scheduler: "ManualScheduler", job_id: int, run_at: float) -> None:
        self._scheduler = scheduler
        self.job_id = job_id
        self.run_at = run_at
        self.cancelled = False

    def cancel(self) -> None:
        if not self.cancelled:
            self.cancelled = True
            self._scheduler.cancelled_ids.add(self.job_id)


class ManualScheduler:
    """
    Virtual-clock scheduler driven by :meth:`advance`.

    Jobs live in a min-heap of ``(run_at, job_id, callback)``; cancelled jobs
    are skipped lazily when they reach the top of the heap.

    Attributes:
        heap (list): Min-heap of pending jobs.
        cancelled_ids (set): Job ids cancelled but not yet popped.
        counter (int): Monotonically increasing job id counter.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self.heap: list[tuple[float, int, Callable[[], None]]] = []
        self.cancelled_ids: set[int] = set()
        self.counter: int = 0

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        self.counter += 1
        run_at = self._now + max(delay, 0.0)
        heapq.heappush(self.heap, (run_at, self.counter, callback))
        return ManualHandle(self, self.counter, run_at)

    @property
    def pending(self) -> int:
        """Number of scheduled jobs that have not been cancelled."""
        return sum(1 for _, job_id, _ in self.heap if job_id not in self.cancelled_ids)

    def advance(self, seconds: float) -> int:
        """Move the clock forward and run every job that became due, in order.

        Returns:
            int: Number of callbacks executed.
        """
        target = self._now + seconds
        executed = 0
        while self.heap and self.heap[0][0] <= target:
            run_at, job_id, callback = heapq.heappop(self.heap)
            if job_id in self.cancelled_ids:
                self.cancelled_ids.discard(job_id)
                continue
            self._now = run_at
            try:
                callback()
            except Exception as exc:
                logger.error("Scheduled callback %s failed: %s", job_id, exc)
            executed += 1
        self._now = target
        return executed
