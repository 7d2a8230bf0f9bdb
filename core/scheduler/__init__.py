"""Per-slot wake and quota scheduling engine."""

from .context import EngineNotifier, SlotContext
from .exceptions import SchedulerError, UnknownSlotError
from .manager import SchedulerManager
from .poller import QuotaPoller, compute_backoff_minutes
from .runtime import RuntimeStatusStore, confirm_wake
from .schedule import (
    ScheduleCell,
    SlotSchedule,
    should_fire_wake,
    update_schedule_markers,
)
from .signals import Watch, WatchReceiver, wait_first
from .timing import Clock, SchedulerTiming
from .wake import WakeScheduler, is_wake_required

__all__ = [
    "Clock",
    "EngineNotifier",
    "QuotaPoller",
    "RuntimeStatusStore",
    "ScheduleCell",
    "SchedulerError",
    "SchedulerManager",
    "SchedulerTiming",
    "SlotContext",
    "SlotSchedule",
    "UnknownSlotError",
    "WakeScheduler",
    "Watch",
    "WatchReceiver",
    "compute_backoff_minutes",
    "confirm_wake",
    "is_wake_required",
    "should_fire_wake",
    "update_schedule_markers",
    "wait_first",
]
