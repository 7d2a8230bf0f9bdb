"""Control point for settings, monitoring and warm-up."""

import asyncio

from core.log import get_logger
from core.models.api.responses import WarmupResponse, WarmupResult
from core.models.domain.quota import QuotaUpdateEvent
from core.models.domain.slot import AppConfig
from core.models.domain.status import RuntimeStatus, SlotRuntimeStatus
from core.scheduler import (
    Clock,
    RuntimeStatusStore,
    SchedulerManager,
    SchedulerTiming,
)
from core.services.tray_service import TrayService
from core.settings_store import SettingsStore
from upstream.client import WarmupClient
from upstream.exceptions import UpstreamError

logger = get_logger(__name__)


class MonitoringService:
    """Owns the settings, the scheduler manager and the tray summary.

    Operations are serialized with a lock so that start, stop and settings
    changes never interleave.
    """

    def __init__(
        self,
        store: SettingsStore,
        client: WarmupClient,
        tray: TrayService | None = None,
        clock: Clock | None = None,
        timing: SchedulerTiming | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            store: Settings persistence
            client: Upstream client used by the engine and warm-up
            tray: Tray summary consumer (a new one is created if omitted)
            clock: Time source for the engine
            timing: Minute scaling for the engine
        """
        self.store = store
        self.client = client
        self.tray = tray or TrayService()
        self.runtime = RuntimeStatusStore()
        self.manager = SchedulerManager(
            client,
            runtime=self.runtime,
            on_quota_update=self._on_quota_update,
            on_tray_refresh=self.tray.refresh,
            clock=clock,
            timing=timing,
        )
        self._config = store.validate(AppConfig())
        self._events: dict[int, QuotaUpdateEvent] = {}
        self._lock = asyncio.Lock()

    @property
    def config(self) -> AppConfig:
        """Current application configuration."""
        return self._config

    @property
    def is_running(self) -> bool:
        """Check whether monitoring is running."""
        return self.manager.is_running

    def load(self) -> AppConfig:
        """Load the settings file into memory."""
        self._config = self.store.load()
        logger.info(f"Settings loaded: {len(self._config.active_slots)} slot(s) ready")
        return self._config

    async def start_monitoring(self) -> RuntimeStatus:
        """Start (or restart) monitoring with the current settings."""
        async with self._lock:
            logger.info(
                f"Starting monitoring for {len(self._config.active_slots)} slot(s)"
            )
            await self.manager.start(self._config)
        return await self.runtime.snapshot()

    async def stop_monitoring(self) -> RuntimeStatus:
        """Stop monitoring and reset every slot's runtime status."""
        async with self._lock:
            logger.info("Stopping monitoring")
            await self.manager.stop()
            await self.runtime.reset_all()
            await self.manager.notifier.refresh_tray(self.runtime)
        return await self.runtime.snapshot()

    async def save_settings(self, config: AppConfig) -> AppConfig:
        """Persist new settings and hot-reload the engine if it is running.

        Raises:
            SettingsError: If the settings file cannot be written
        """
        async with self._lock:
            saved = self.store.save(config)
            self._config = saved
            logger.info("Settings saved")
            await self.manager.reload(saved)
        return saved

    async def runtime_status(self) -> RuntimeStatus:
        """Snapshot of every slot's runtime status."""
        return await self.runtime.snapshot()

    async def slot_status(self, slot: int) -> SlotRuntimeStatus:
        """Snapshot of one slot's runtime status.

        Raises:
            UnknownSlotError: If the slot id is out of range
        """
        return await self.runtime.get(slot)

    def latest_quota_events(self) -> list[QuotaUpdateEvent]:
        """Latest quota update event per slot, ordered by slot."""
        return [self._events[slot] for slot in sorted(self._events)]

    async def warmup_all(self) -> WarmupResponse:
        """Send a warm-up request for every enabled slot with a key.

        A failing slot is reported and never stops the remaining ones.
        """
        logger.info("Warm-up requested for all slots")
        results: list[WarmupResult] = []
        for slot_cfg in self._config.active_slots:
            try:
                await self.client.warmup(slot_cfg)
            except UpstreamError as e:
                logger.warning(f"slot {slot_cfg.slot}: warm-up failed: {e}")
                results.append(
                    WarmupResult(
                        slot=slot_cfg.slot,
                        label=slot_cfg.label,
                        success=False,
                        error=str(e),
                    )
                )
                continue

            logger.info(f"slot {slot_cfg.slot}: warm-up succeeded")
            results.append(
                WarmupResult(slot=slot_cfg.slot, label=slot_cfg.label, success=True)
            )

        response = WarmupResponse(results=results)
        logger.info(
            f"Warm-up completed: {response.succeeded} succeeded, "
            f"{response.failed} failed"
        )
        return response

    async def _on_quota_update(self, event: QuotaUpdateEvent) -> None:
        self._events[event.slot] = event
