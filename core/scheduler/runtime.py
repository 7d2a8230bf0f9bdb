"""Shared runtime status store and wake confirmation."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from core.constants import MAX_SLOTS
from core.log import get_logger
from core.models.domain.quota import QuotaSnapshot
from core.models.domain.status import RuntimeStatus, SlotRuntimeStatus
from core.scheduler.exceptions import UnknownSlotError
from core.types import WakeConfirmation

logger = get_logger(__name__)


class RuntimeStatusStore:
    """Single-lock store for the status of every slot.

    Readers always get deep copies, so a snapshot never changes after it
    has been handed out.
    """

    def __init__(self) -> None:
        self._status = RuntimeStatus()
        self._lock = asyncio.Lock()

    @staticmethod
    def _index(slot: int) -> int:
        if not 1 <= slot <= MAX_SLOTS:
            raise UnknownSlotError(f"slot {slot} is outside 1..{MAX_SLOTS}")
        return slot - 1

    async def snapshot(self) -> RuntimeStatus:
        """Copy of the whole runtime status."""
        async with self._lock:
            return self._status.model_copy(deep=True)

    async def get(self, slot: int) -> SlotRuntimeStatus:
        """Copy of one slot's status."""
        idx = self._index(slot)
        async with self._lock:
            return self._status.slots[idx].model_copy(deep=True)

    @asynccontextmanager
    async def edit(self, slot: int) -> AsyncIterator[SlotRuntimeStatus]:
        """Hold the lock while the caller mutates one slot's status."""
        idx = self._index(slot)
        async with self._lock:
            yield self._status.slots[idx]

    async def begin_run(self) -> None:
        """Reset every slot and mark monitoring as running."""
        async with self._lock:
            self._status = RuntimeStatus(monitoring=True)

    async def reset_all(self) -> None:
        """Reset every slot and mark monitoring as stopped."""
        async with self._lock:
            self._status = RuntimeStatus(monitoring=False)

    async def clear_slot(self, slot: int) -> None:
        """Reset one slot's status to its initial values."""
        idx = self._index(slot)
        async with self._lock:
            self._status.slots[idx] = SlotRuntimeStatus(slot=slot)

    async def mark_started(self, slot: int, name: str) -> None:
        """Record that a slot's tasks were spawned."""
        async with self.edit(slot) as status:
            status.name = name
            status.enabled = True

    async def apply_quota(self, slot: int, snapshot: QuotaSnapshot) -> None:
        """Copy quota fields into a slot without touching its counters."""
        async with self.edit(slot) as status:
            apply_snapshot(status, snapshot)


def apply_snapshot(status: SlotRuntimeStatus, snapshot: QuotaSnapshot) -> None:
    """Copy the quota fields of a snapshot onto a status entry."""
    status.percentage = snapshot.percentage
    status.timer_active = snapshot.timer_active
    status.next_reset_hms = snapshot.next_reset_hms
    status.last_updated_epoch_ms = snapshot.next_reset_epoch_ms


def confirm_wake(
    status: SlotRuntimeStatus,
    observed_reset_ms: int | None,
    max_consecutive_errors: int,
) -> WakeConfirmation:
    """Decide whether a pending wake is confirmed by a fresh quota reading.

    A wake is confirmed once the reset marker has advanced past the one
    captured when the wake was sent. Failures count toward the wake error
    ceiling; reaching it pauses wakes for the slot.

    Args:
        status: Slot status with ``wake_pending`` set, mutated in place
        observed_reset_ms: Reset marker from the latest quota fetch
        max_consecutive_errors: Error ceiling from the engine policy

    Returns:
        The confirmation outcome
    """
    previous = status.wake_reset_epoch_ms

    if observed_reset_ms is None:
        outcome = WakeConfirmation.MISSING_RESET
        status.last_error = "wake confirmation failed: quota reported no reset time"
    elif previous is not None and observed_reset_ms <= previous:
        outcome = WakeConfirmation.NOT_ADVANCED
        status.last_error = (
            "wake confirmation failed: reset time did not advance "
            f"({observed_reset_ms} <= {previous})"
        )
    else:
        status.wake_pending = False
        status.wake_reset_epoch_ms = None
        status.wake_consecutive_errors = 0
        status.wake_auto_disabled = False
        return WakeConfirmation.CONFIRMED

    status.wake_consecutive_errors += 1
    if status.wake_consecutive_errors >= max_consecutive_errors:
        status.wake_auto_disabled = True
        status.wake_pending = False
    return outcome
