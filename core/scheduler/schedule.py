"""Per-slot schedule state and wake trigger evaluation.

The functions here are pure: they look at a slot's configuration, its
schedule state and the current time, and decide whether a wake is due.
Dedup markers guarantee at most one wake per interval window, per
configured time-of-day per day, and per observed quota reset.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime

from core.models.domain.slot import SlotConfig
from core.scheduler.timing import SchedulerTiming
from core.types import ScheduleMode
from core.utils import format_local_hm, times_marker


@dataclass
class SlotSchedule:
    """Mutable schedule state for one slot."""

    # Monotonic seconds of the last interval wake (task start initially)
    last_interval_fire: float | None = None
    # YYYY-MM-DD-HH:MM of the last time-of-day wake
    last_times_marker: str | None = None
    # Reset marker for which an after-reset wake was already sent
    last_after_reset_marker: int | None = None
    # Latest reset time reported by the quota endpoint (epoch ms)
    next_reset_epoch_ms: int | None = None
    # Monotonic deadline of the wake confirmation window
    wake_retry_window_deadline: float | None = None
    # Whether the single forced re-send of the current episode happened
    wake_timeout_retry_fired: bool = False


@dataclass
class ScheduleCell:
    """Lock-guarded :class:`SlotSchedule` shared by a slot's two tasks."""

    state: SlotSchedule = field(default_factory=SlotSchedule)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def snapshot(self) -> SlotSchedule:
        """Return a copy of the current state."""
        async with self._lock:
            return replace(self.state)

    @asynccontextmanager
    async def edit(self) -> AsyncIterator[SlotSchedule]:
        """Hold the lock while the caller mutates the state."""
        async with self._lock:
            yield self.state


def interval_due(
    cfg: SlotConfig,
    schedule: SlotSchedule,
    monotonic_now: float,
    timing: SchedulerTiming,
) -> bool:
    """Check whether the interval mode is due."""
    if not cfg.schedule_interval_enabled or schedule.last_interval_fire is None:
        return False
    elapsed = monotonic_now - schedule.last_interval_fire
    return elapsed >= timing.minutes(cfg.schedule_interval_minutes)


def times_due(cfg: SlotConfig, schedule: SlotSchedule, now: datetime) -> bool:
    """Check whether a configured time-of-day matches and has not fired today."""
    if not cfg.schedule_times_enabled:
        return False
    if format_local_hm(now) not in cfg.schedule_times:
        return False
    return schedule.last_times_marker != times_marker(now)


def after_reset_due(cfg: SlotConfig, schedule: SlotSchedule, now: datetime) -> bool:
    """Check whether an unhandled reset has passed.

    The configured offset is added to the epoch-ms reset unscaled, so a reset
    that has already passed is due on the next tick.
    """
    if not cfg.schedule_after_reset_enabled:
        return False
    reset = schedule.next_reset_epoch_ms
    if reset is None or schedule.last_after_reset_marker == reset:
        return False
    due_at = reset + cfg.schedule_after_reset_minutes
    return int(now.timestamp() * 1000) >= due_at


def due_modes(
    cfg: SlotConfig,
    schedule: SlotSchedule,
    now: datetime,
    monotonic_now: float,
    timing: SchedulerTiming,
) -> list[ScheduleMode]:
    """List the enabled modes whose trigger currently matches."""
    modes: list[ScheduleMode] = []
    if interval_due(cfg, schedule, monotonic_now, timing):
        modes.append(ScheduleMode.INTERVAL)
    if times_due(cfg, schedule, now):
        modes.append(ScheduleMode.TIMES)
    if after_reset_due(cfg, schedule, now):
        modes.append(ScheduleMode.AFTER_RESET)
    return modes


def should_fire_wake(
    cfg: SlotConfig,
    schedule: SlotSchedule,
    now: datetime,
    monotonic_now: float,
    timing: SchedulerTiming,
) -> str | None:
    """Evaluate every enabled mode and combine the matches.

    Args:
        cfg: Slot configuration
        schedule: Current schedule state
        now: Local wall-clock time
        monotonic_now: Monotonic seconds
        timing: Minute scaling

    Returns:
        A human-readable reason naming the matching modes, or None
    """
    modes = due_modes(cfg, schedule, now, monotonic_now, timing)
    if not modes:
        return None
    return "+".join(mode.value for mode in modes)


def update_schedule_markers(
    cfg: SlotConfig,
    schedule: SlotSchedule,
    now: datetime,
    monotonic_now: float,
    timing: SchedulerTiming,
) -> list[ScheduleMode]:
    """Advance the dedup markers of every mode that currently matches.

    Modes that are disabled or not matching keep their markers.

    Returns:
        The modes whose markers were advanced
    """
    modes = due_modes(cfg, schedule, now, monotonic_now, timing)
    for mode in modes:
        if mode is ScheduleMode.INTERVAL:
            schedule.last_interval_fire = monotonic_now
        elif mode is ScheduleMode.TIMES:
            schedule.last_times_marker = times_marker(now)
        elif mode is ScheduleMode.AFTER_RESET:
            schedule.last_after_reset_marker = schedule.next_reset_epoch_ms
    return modes


def retry_window_open(schedule: SlotSchedule, monotonic_now: float) -> bool:
    """Check whether the wake confirmation window is still running."""
    deadline = schedule.wake_retry_window_deadline
    return deadline is not None and monotonic_now < deadline


def retry_window_elapsed(schedule: SlotSchedule, monotonic_now: float) -> bool:
    """Check whether a confirmation window existed and has run out."""
    deadline = schedule.wake_retry_window_deadline
    return deadline is not None and monotonic_now >= deadline
