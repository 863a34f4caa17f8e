"""Per-execution time budget."""

import time
from typing import Callable


class DeadlineGuard:
    """
    Single absolute expiry instant for the current execution.

    The guard is advisory: it never interrupts a call in flight, callers
    ask `expired()` before starting each unit of work.
    """

    def __init__(self, max_duration: float, clock: Callable[[], float] = time.monotonic):
        self.max_duration = max_duration
        self._clock = clock
        self.started_at = clock()
        self.expires_at = self.started_at + max_duration

    def expired(self) -> bool:
        return self._clock() >= self.expires_at

    def remaining(self) -> float:
        """Seconds left in the budget, never negative"""
        return max(0.0, self.expires_at - self._clock())

    def __repr__(self):
        return f"DeadlineGuard(max_duration={self.max_duration}, remaining={self.remaining():.1f})"
