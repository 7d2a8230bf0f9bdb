"""Tray summary rendering."""

from core.log import get_logger
from core.models.domain.status import RuntimeStatus, SlotRuntimeStatus
from core.models.domain.tray import TraySummary

logger = get_logger(__name__)

IDLE_LINE = "Quota monitor idle"


def render_slot_line(slot: SlotRuntimeStatus) -> str:
    """Render one tray line for an enabled slot."""
    if slot.auto_disabled:
        return f"{slot.label}: DISABLED (errors)"
    if slot.wake_auto_disabled:
        return (
            f"{slot.label}: WAKE PAUSED (wake errors x{slot.wake_consecutive_errors})"
        )

    if slot.next_reset_hms:
        time_text = slot.next_reset_hms
    elif slot.timer_active:
        time_text = "--:--:--"
    else:
        time_text = "idle"
    pct_text = f"{slot.percentage}%" if slot.percentage is not None else "n/a"

    line = f"{slot.label}: {time_text} / {pct_text}"
    if slot.quota_consecutive_errors > 0:
        line += f" (err x{slot.quota_consecutive_errors})"
    return line


def render_tray(runtime: RuntimeStatus) -> TraySummary:
    """Build the tray summary for a runtime snapshot."""
    enabled = [slot for slot in runtime.slots if slot.enabled]
    lines = [render_slot_line(slot) for slot in enabled] or [IDLE_LINE]
    any_disabled = any(s.auto_disabled or s.wake_auto_disabled for s in enabled)
    alert = any_disabled or (not enabled and not runtime.monitoring)
    return TraySummary(lines=lines, alert=alert, monitoring=runtime.monitoring)


class TrayService:
    """Keeps the latest tray summary for display."""

    def __init__(self) -> None:
        self._summary = render_tray(RuntimeStatus())

    @property
    def summary(self) -> TraySummary:
        """Latest rendered summary."""
        return self._summary

    async def refresh(self, runtime: RuntimeStatus) -> None:
        """Re-render the summary from a runtime snapshot."""
        self._summary = render_tray(runtime)
        logger.debug(f"tray: {' | '.join(self._summary.lines)}")
        if self._summary.alert:
            logger.debug("tray: alert state")
