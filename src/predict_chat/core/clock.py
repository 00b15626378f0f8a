"""
Clock sources

The core only ever reads the clock and compares against expiry; it never
waits on it.
"""

import threading
import time
from typing import Protocol


class Clock(Protocol):
    def now(self) -> int:
        """Current slot / timestamp"""
        ...


class ManualClock:
    """
    Explicitly driven monotonic clock (tests, simulations, CLI)

    Usage:
        clock = ManualClock(100)
        clock.advance(5)   # now() == 105
        clock.set(200)     # now() == 200
    """

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError(f"start cannot be negative, got {start}")
        self._now = start
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            return self._now

    def advance(self, ticks: int = 1) -> int:
        if ticks < 0:
            raise ValueError("Clock cannot move backward")
        with self._lock:
            self._now += ticks
            return self._now

    def set(self, value: int) -> int:
        with self._lock:
            if value < self._now:
                raise ValueError(f"Clock cannot move backward ({self._now} -> {value})")
            self._now = value
            return self._now


class SystemClock:
    """Unix time in whole seconds"""

    def now(self) -> int:
        return int(time.time())
