"""
Clocks
======

Time sources for the engine. Deadlines are absolute timestamps, so the engine
only ever asks "what time is it now".
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Anything with a ``now()`` returning seconds as a float."""

    def now(self) -> float:
        ...


class SystemClock:
    """Monotonic wall clock for real hosts."""

    def now(self) -> float:
        return time.monotonic()


class ManualClock:
    """
    Clock advanced explicitly by the caller.

    Used by tests, the Gymnasium environment and simulation tools so timing
    logic runs without real delays.
    """

    def __init__(self, start: float = 0.0):
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        """Move time forward and return the new time."""
        if seconds < 0:
            raise ValueError(f"Cannot move a clock backwards ({seconds}s)")
        self._now += seconds
        return self._now

    def set(self, when: float) -> None:
        self._now = float(when)
