"""Tests for tray summary rendering."""

import pytest

from core.models.domain.status import RuntimeStatus, SlotRuntimeStatus
from core.services.tray_service import TrayService, render_slot_line, render_tray


def _runtime(*slots: SlotRuntimeStatus, monitoring: bool = True) -> RuntimeStatus:
    status = RuntimeStatus(monitoring=monitoring)
    for slot in slots:
        status.slots[slot.slot - 1] = slot
    return status


class TestRenderSlotLine:
    """Per-slot tray lines."""

    def test_reset_time_and_percentage(self) -> None:
        slot = SlotRuntimeStatus(
            slot=1, name="work", enabled=True, next_reset_hms="14:05:00", percentage=42
        )
        assert render_slot_line(slot) == "work: 14:05:00 / 42%"

    def test_active_timer_without_time(self) -> None:
        slot = SlotRuntimeStatus(slot=2, enabled=True, timer_active=True)
        assert render_slot_line(slot) == "k2: --:--:-- / n/a"

    def test_idle(self) -> None:
        slot = SlotRuntimeStatus(slot=3, enabled=True, percentage=0)
        assert render_slot_line(slot) == "k3: idle / 0%"

    def test_error_suffix(self) -> None:
        slot = SlotRuntimeStatus(
            slot=1, enabled=True, percentage=5, quota_consecutive_errors=3
        )
        assert render_slot_line(slot) == "k1: idle / 5% (err x3)"

    def test_disabled(self) -> None:
        slot = SlotRuntimeStatus(
            slot=1, enabled=True, auto_disabled=True, wake_auto_disabled=True
        )
        assert render_slot_line(slot) == "k1: DISABLED (errors)"

    def test_wake_paused(self) -> None:
        slot = SlotRuntimeStatus(
            slot=4,
            name="night",
            enabled=True,
            wake_auto_disabled=True,
            wake_consecutive_errors=10,
        )
        assert render_slot_line(slot) == "night: WAKE PAUSED (wake errors x10)"


class TestRenderTray:
    """Whole-summary rules."""

    def test_idle_when_no_enabled_slots(self) -> None:
        summary = render_tray(_runtime(monitoring=False))

        assert summary.lines == ["Quota monitor idle"]
        assert summary.alert is True

    def test_no_alert_while_monitoring_without_slots(self) -> None:
        summary = render_tray(_runtime(monitoring=True))
        assert summary.alert is False

    def test_only_enabled_slots_listed(self) -> None:
        summary = render_tray(
            _runtime(
                SlotRuntimeStatus(slot=1, enabled=True, percentage=10),
                SlotRuntimeStatus(slot=2, enabled=False, percentage=99),
                SlotRuntimeStatus(slot=5, enabled=True, percentage=20),
            )
        )

        assert summary.lines == ["k1: idle / 10%", "k5: idle / 20%"]
        assert summary.tooltip == "k1: idle / 10%\nk5: idle / 20%"
        assert summary.alert is False

    @pytest.mark.parametrize("flag", ["auto_disabled", "wake_auto_disabled"])
    def test_alert_on_disabled_slot(self, flag: str) -> None:
        slot = SlotRuntimeStatus(slot=1, enabled=True, **{flag: True})
        assert render_tray(_runtime(slot)).alert is True


class TestTrayService:
    """Summary kept for the API."""

    @pytest.mark.asyncio
    async def test_refresh_replaces_summary(self) -> None:
        tray = TrayService()
        assert tray.summary.lines == ["Quota monitor idle"]

        await tray.refresh(
            _runtime(SlotRuntimeStatus(slot=1, enabled=True, percentage=7))
        )

        assert tray.summary.lines == ["k1: idle / 7%"]
        assert tray.summary.monitoring is True
