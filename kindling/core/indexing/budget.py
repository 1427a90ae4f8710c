"""Wall-clock time budget for an indexing run.

The budget is a cooperative cancellation token: the job checks it once per
file and pauses with a resumable checkpoint when it trips, leaving a safety
margin before the hard limit imposed by the hosting environment.
"""

import time
from collections.abc import Callable


class TimeBudget:
    """Tracks elapsed time against ``limit - safety_margin`` seconds."""

    def __init__(
        self,
        limit_seconds: float,
        safety_margin_seconds: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Start the budget clock.

        Args:
            limit_seconds: Hard limit for the run.
            safety_margin_seconds: Stop this long before the hard limit.
            clock: Monotonic clock, injectable for tests.
        """
        self.limit_seconds = limit_seconds
        self.safety_margin_seconds = safety_margin_seconds
        self._clock = clock
        self._started = clock()

    @classmethod
    def unlimited(cls) -> "TimeBudget":
        return cls(float("inf"))

    @property
    def elapsed(self) -> float:
        return self._clock() - self._started

    @property
    def remaining(self) -> float:
        return self.limit_seconds - self.safety_margin_seconds - self.elapsed

    def exceeded(self) -> bool:
        """True once the usable part of the budget is spent."""
        return self.remaining <= 0
