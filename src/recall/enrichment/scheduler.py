"""Delayed-call schedulers.

The poller and other background loops schedule work through a small
call_later interface so tests can drive time by hand.
"""

import heapq
import itertools
import logging
import threading
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)


class ScheduledCall(Protocol):
    """Handle to a pending call."""

    def cancel(self) -> None:
        """Prevent the call from running. Idempotent."""
        ...


class Scheduler(Protocol):
    """Runs callables after a delay."""

    def call_later(self, delay: float, fn: Callable[[], None]) -> ScheduledCall:
        """Schedule fn to run after delay seconds."""
        ...


class ThreadingScheduler:
    """Scheduler backed by daemon threading.Timer instances."""

    def call_later(self, delay: float, fn: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(max(delay, 0.0), fn)
        timer.daemon = True
        timer.start()
        return timer


class _ManualCall:
    def __init__(self, due: float, fn: Callable[[], None]) -> None:
        self.due = due
        self.fn = fn
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic scheduler whose clock only moves when told to.

    Calls run on the caller's thread inside advance() or run_pending().
    """

    def __init__(self) -> None:
        self._now = 0.0
        self._queue: list[tuple[float, int, _ManualCall]] = []
        self._counter = itertools.count()

    @property
    def now(self) -> float:
        """Seconds elapsed since creation."""
        return self._now

    @property
    def pending(self) -> int:
        """Number of calls waiting to run."""
        return sum(1 for _, _, call in self._queue if not call.cancelled)

    def call_later(self, delay: float, fn: Callable[[], None]) -> _ManualCall:
        call = _ManualCall(self._now + max(delay, 0.0), fn)
        heapq.heappush(self._queue, (call.due, next(self._counter), call))
        return call

    def next_delay(self) -> float | None:
        """Seconds until the next live call, or None."""
        live = [due for due, _, call in self._queue if not call.cancelled]
        return min(live) - self._now if live else None

    def advance(self, seconds: float) -> int:
        """Move the clock forward, running every call that falls due.

        Returns:
            Number of calls run.
        """
        target = self._now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, call = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            if call.cancelled:
                continue
            call.fn()
            ran += 1
        self._now = target
        return ran

    def run_pending(self) -> int:
        """Run calls that are already due."""
        return self.advance(0.0)


__all__ = ["ManualScheduler", "ScheduledCall", "Scheduler", "ThreadingScheduler"]
