"""
Scheduler
=========

Cancellable delayed callbacks, run from the engine's tick.

Each callback carries a guard: a zero-argument predicate evaluated when the
callback comes due. A callback whose guard fails is dropped silently, which
is how a flag-clear scheduled for round N becomes a no-op once round N+1 has
started.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(order=True)
class ScheduledCall:
    """A pending callback. Ordered by due time, then insertion."""
    due: float
    seq: int
    name: str = field(compare=False)
    callback: Callable[[], None] = field(compare=False)
    guard: Optional[Callable[[], bool]] = field(default=None, compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class Scheduler:
    """Min-heap of ScheduledCall entries drained by ``run_due``."""

    def __init__(self) -> None:
        self._heap: List[ScheduledCall] = []
        self._seq = itertools.count()

    def __len__(self) -> int:
        return sum(1 for call in self._heap if not call.cancelled)

    def schedule(
        self,
        due: float,
        name: str,
        callback: Callable[[], None],
        guard: Optional[Callable[[], bool]] = None
    ) -> ScheduledCall:
        """
        Schedule ``callback`` to run at absolute time ``due``.

        Args:
            due: Absolute clock time.
            name: Label used in debug logs.
            callback: Zero-argument function.
            guard: Predicate checked at fire time; False skips the call.

        Returns:
            Handle whose ``cancel()`` removes the call.
        """
        call = ScheduledCall(due, next(self._seq), name, callback, guard)
        heapq.heappush(self._heap, call)
        return call

    def run_due(self, now: float) -> int:
        """
        Run every callback due at or before ``now``.

        Returns:
            Number of callbacks actually invoked.
        """
        fired = 0
        while self._heap and self._heap[0].due <= now:
            call = heapq.heappop(self._heap)
            if call.cancelled:
                continue
            if call.guard is not None and not call.guard():
                logger.debug("[timer-abort] %s stale at %.3f", call.name, now)
                continue
            logger.debug("[timer-fire] %s at %.3f", call.name, now)
            call.callback()
            fired += 1
        return fired

    def cancel_all(self) -> None:
        for call in self._heap:
            call.cancel()
        self._heap.clear()
