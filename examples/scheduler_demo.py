"""Demo for the wake/quota engine against a simulated upstream."""

import asyncio
import time

from core import get_logger, setup_logging
from core.models.domain.quota import QuotaSnapshot, QuotaUpdateEvent
from core.models.domain.slot import AppConfig, SlotConfig, default_slots
from core.models.domain.status import RuntimeStatus
from core.scheduler import SchedulerManager, SchedulerTiming
from core.services.tray_service import render_tray
from core.utils import epoch_ms_to_local_hms
from upstream.exceptions import QuotaFetchError

logger = get_logger(__name__)

# One demo minute lasts 0.2 seconds
DEMO_TIMING = SchedulerTiming(seconds_per_minute=0.2, wake_tick_seconds=0.2)
WINDOW_MS = 5 * 60 * 60 * 1000


class SimulatedUpstream:
    """Upstream whose quota window starts when a wake arrives."""

    def __init__(self, flaky_slot: int | None = None) -> None:
        self.flaky_slot = flaky_slot
        self.resets: dict[int, int] = {}
        self.wakes = 0

    async def fetch_quota(self, slot: SlotConfig) -> QuotaSnapshot:
        if slot.slot == self.flaky_slot:
            raise QuotaFetchError("quota HTTP error: 503")
        reset = self.resets.get(slot.slot)
        return QuotaSnapshot(
            percentage=3 if reset else 0,
            timer_active=reset is not None,
            next_reset_hms=epoch_ms_to_local_hms(reset),
            next_reset_epoch_ms=reset,
        )

    async def send_wake(self, slot: SlotConfig) -> None:
        self.wakes += 1
        self.resets[slot.slot] = int(time.time() * 1000) + WINDOW_MS


async def main() -> None:
    """Run the engine for a few demo minutes."""
    setup_logging(level="INFO")
    print("🚀 Quotawake Engine Demo")
    print("=" * 50)

    slots = default_slots()
    slots[0] = SlotConfig(
        slot=1,
        name="interval",
        enabled=True,
        api_key="demo",
        schedule_interval_enabled=True,
        schedule_interval_minutes=2,
        poll_interval_minutes=5,
    )
    slots[1] = SlotConfig(
        slot=2, name="flaky", enabled=True, api_key="demo", poll_interval_minutes=1
    )
    config = AppConfig(
        slots=slots, max_consecutive_errors=4, quota_poll_backoff_cap_minutes=2
    )

    upstream = SimulatedUpstream(flaky_slot=2)

    async def on_quota(event: QuotaUpdateEvent) -> None:
        reset = event.next_reset_hms or "-"
        print(f"📊 slot {event.slot}: {event.percentage}% reset={reset}")

    async def on_tray(runtime: RuntimeStatus) -> None:
        print(f"🖥️  {' | '.join(render_tray(runtime).lines)}")

    manager = SchedulerManager(
        upstream, on_quota_update=on_quota, on_tray_refresh=on_tray, timing=DEMO_TIMING
    )

    await manager.start(config)
    await asyncio.sleep(3.0)
    await manager.stop()

    status = await manager.runtime.snapshot()
    print("\n📋 Final state:")
    for slot in status.slots[:2]:
        print(
            f"   {slot.label}: pending={slot.wake_pending} "
            f"quota_errors={slot.quota_consecutive_errors} "
            f"auto_disabled={slot.auto_disabled}"
        )
    print(f"   Wakes sent: {upstream.wakes}")


if __name__ == "__main__":
    asyncio.run(main())
