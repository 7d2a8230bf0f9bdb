"""State shared by the tasks of one slot."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from core.log import get_logger
from core.models.domain.quota import QuotaUpdateEvent
from core.models.domain.slot import EnginePolicy, SlotConfig
from core.models.domain.status import RuntimeStatus
from core.scheduler.runtime import RuntimeStatusStore
from core.scheduler.schedule import ScheduleCell
from core.scheduler.signals import Watch
from core.scheduler.timing import Clock, SchedulerTiming
from upstream.client import QuotaWakeClient

logger = get_logger(__name__)

QuotaUpdateCallback = Callable[[QuotaUpdateEvent], Awaitable[None]]
TrayRefreshCallback = Callable[[RuntimeStatus], Awaitable[None]]


class EngineNotifier:
    """Forwards engine notifications to optional observer callbacks.

    Observer failures are logged and never reach the engine loops.
    """

    def __init__(
        self,
        on_quota_update: QuotaUpdateCallback | None = None,
        on_tray_refresh: TrayRefreshCallback | None = None,
    ) -> None:
        self.on_quota_update = on_quota_update
        self.on_tray_refresh = on_tray_refresh

    async def quota_updated(self, event: QuotaUpdateEvent) -> None:
        """Emit a quota update event."""
        if self.on_quota_update is None:
            return
        try:
            await self.on_quota_update(event)
        except Exception as e:
            logger.error(f"slot {event.slot}: quota update callback failed: {e}")

    async def refresh_tray(self, runtime: RuntimeStatusStore) -> None:
        """Push a fresh runtime snapshot to the tray observer."""
        if self.on_tray_refresh is None:
            return
        try:
            await self.on_tray_refresh(await runtime.snapshot())
        except Exception as e:
            logger.error(f"Tray refresh callback failed: {e}")


@dataclass
class SlotContext:
    """Everything a slot's wake scheduler and quota poller share."""

    slot: int
    client: QuotaWakeClient
    config: Watch[SlotConfig]
    policy: Watch[EnginePolicy]
    runtime: RuntimeStatusStore
    notifier: EngineNotifier
    clock: Clock
    timing: SchedulerTiming
    schedule: ScheduleCell = field(default_factory=ScheduleCell)
    stop: asyncio.Event = field(default_factory=asyncio.Event)
    poll_now: asyncio.Event = field(default_factory=asyncio.Event)

    async def refresh_tray(self) -> None:
        """Push a runtime snapshot to the tray observer."""
        await self.notifier.refresh_tray(self.runtime)
