"""Clock and duration helpers for the scheduling engine."""

import time
from dataclasses import dataclass
from datetime import datetime

from core.constants import SECONDS_PER_MINUTE, WAKE_TICK_SECONDS


class Clock:
    """Source of wall-clock and monotonic time."""

    def now(self) -> datetime:
        """Current local wall-clock time."""
        return datetime.now()

    def monotonic(self) -> float:
        """Monotonic seconds, used for intervals and deadlines."""
        return time.monotonic()

    def epoch_ms(self) -> int:
        """Current wall-clock time in epoch milliseconds."""
        return int(self.now().timestamp() * 1000)


@dataclass(frozen=True)
class SchedulerTiming:
    """Converts scheduling minutes into sleep seconds.

    Production uses real minutes; tests shrink ``seconds_per_minute`` so that
    backoff and confirmation windows elapse in milliseconds.
    """

    seconds_per_minute: float = SECONDS_PER_MINUTE
    wake_tick_seconds: float = WAKE_TICK_SECONDS

    def minutes(self, value: float) -> float:
        """Convert minutes to seconds."""
        return value * self.seconds_per_minute
