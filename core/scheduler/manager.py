"""Lifecycle manager for the per-slot task pairs."""

import asyncio
from dataclasses import dataclass

from core.log import get_logger
from core.models.domain.slot import AppConfig, EnginePolicy, SlotConfig
from core.scheduler.context import (
    EngineNotifier,
    QuotaUpdateCallback,
    SlotContext,
    TrayRefreshCallback,
)
from core.scheduler.poller import QuotaPoller
from core.scheduler.runtime import RuntimeStatusStore
from core.scheduler.signals import Watch
from core.scheduler.timing import Clock, SchedulerTiming
from core.scheduler.wake import WakeScheduler
from upstream.client import QuotaWakeClient

logger = get_logger(__name__)


@dataclass
class SlotTasks:
    """Handles for one running slot."""

    context: SlotContext
    wake_task: asyncio.Task[None]
    poll_task: asyncio.Task[None]

    @property
    def tasks(self) -> tuple[asyncio.Task[None], asyncio.Task[None]]:
        return self.wake_task, self.poll_task

    @property
    def finished(self) -> bool:
        """Both loops have exited (stopped or auto-disabled)."""
        return all(task.done() for task in self.tasks)


class SchedulerManager:
    """Starts, stops and hot-reloads the scheduling engine.

    Each active slot runs a wake scheduler and a quota poller. Reloading
    keeps the tasks of unchanged slots alive so their schedule state and
    any pending wake survive.
    """

    def __init__(
        self,
        client: QuotaWakeClient,
        runtime: RuntimeStatusStore | None = None,
        on_quota_update: QuotaUpdateCallback | None = None,
        on_tray_refresh: TrayRefreshCallback | None = None,
        clock: Clock | None = None,
        timing: SchedulerTiming | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            client: Upstream client shared by every slot
            runtime: Status store (a new one is created if omitted)
            on_quota_update: Called after every successful quota fetch
            on_tray_refresh: Called with a status snapshot on state changes
            clock: Time source (real clock if omitted)
            timing: Minute scaling (real minutes if omitted)
        """
        self.client = client
        self.runtime = runtime or RuntimeStatusStore()
        self.notifier = EngineNotifier(on_quota_update, on_tray_refresh)
        self.clock = clock or Clock()
        self.timing = timing or SchedulerTiming()
        self._policy: Watch[EnginePolicy] = Watch(EnginePolicy())
        self._slots: dict[int, SlotTasks] = {}
        self._running = False

    @property
    def is_running(self) -> bool:
        """Check whether monitoring is running."""
        return self._running

    @property
    def running_slots(self) -> list[int]:
        """Slot ids whose tasks are still running."""
        return sorted(
            slot for slot, tasks in self._slots.items() if not tasks.finished
        )

    def slot_context(self, slot: int) -> SlotContext | None:
        """Shared context of a running slot."""
        tasks = self._slots.get(slot)
        return tasks.context if tasks else None

    async def start(self, config: AppConfig) -> None:
        """Start monitoring every active slot, restarting if already running."""
        await self.stop()

        self._policy = Watch(config.policy)
        await self.runtime.begin_run()
        self._running = True

        for slot_cfg in config.active_slots:
            await self._spawn(slot_cfg)

        logger.info(f"Monitoring started for slots {self.running_slots}")
        await self.notifier.refresh_tray(self.runtime)

    async def stop(self) -> None:
        """Stop every slot and wait for its tasks to exit."""
        if not self._slots and not self._running:
            return

        for slot in list(self._slots):
            await self._stop_slot(slot)
        self._running = False
        logger.info("Monitoring stopped")

    async def reload(self, config: AppConfig) -> None:
        """Apply a new configuration without restarting unchanged slots."""
        if not self._running:
            logger.info("Monitoring not running, nothing to reload")
            return

        policy = config.policy
        if policy != self._policy.value:
            logger.info("Engine policy changed")
            self._policy.send(policy)

        desired = {slot_cfg.slot: slot_cfg for slot_cfg in config.active_slots}
        current = set(self._slots)

        for slot in sorted(current - desired.keys()):
            await self._stop_slot(slot)
            await self.runtime.clear_slot(slot)

        for slot in sorted(desired.keys() - current):
            await self._spawn(desired[slot])

        for slot in sorted(current & desired.keys()):
            slot_cfg = desired[slot]
            watch = self._slots[slot].context.config
            changed = watch.value != slot_cfg
            if await self._needs_respawn(slot, changed):
                logger.info(f"slot {slot}: restarting halted slot")
                await self._stop_slot(slot)
                await self.runtime.clear_slot(slot)
                await self._spawn(slot_cfg)
            elif changed:
                logger.info(f"slot {slot}: configuration updated")
                watch.send(slot_cfg)
                await self.runtime.mark_started(slot, slot_cfg.name)

        logger.info(f"Monitoring reloaded, active slots {self.running_slots}")
        await self.notifier.refresh_tray(self.runtime)

    async def _needs_respawn(self, slot: int, changed: bool) -> bool:
        """Check whether a kept slot must be recreated instead of updated.

        A slot whose loops have exited only recovers through new tasks, and
        a changed config is the user's cue to retry an auto-disabled slot.
        """
        if self._slots[slot].finished:
            return True
        if not changed:
            return False
        status = await self.runtime.get(slot)
        return status.auto_disabled or status.wake_auto_disabled

    async def _spawn(self, slot_cfg: SlotConfig) -> None:
        ctx = SlotContext(
            slot=slot_cfg.slot,
            client=self.client,
            config=Watch(slot_cfg),
            policy=self._policy,
            runtime=self.runtime,
            notifier=self.notifier,
            clock=self.clock,
            timing=self.timing,
        )
        await self.runtime.mark_started(slot_cfg.slot, slot_cfg.name)

        wake = WakeScheduler(ctx)
        poller = QuotaPoller(ctx)
        self._slots[slot_cfg.slot] = SlotTasks(
            context=ctx,
            wake_task=asyncio.create_task(
                wake.run(), name=f"wake-slot-{slot_cfg.slot}"
            ),
            poll_task=asyncio.create_task(
                poller.run(), name=f"poll-slot-{slot_cfg.slot}"
            ),
        )
        logger.info(f"slot {slot_cfg.slot}: tasks spawned ({slot_cfg.label})")

    async def _stop_slot(self, slot: int) -> None:
        tasks = self._slots.pop(slot, None)
        if tasks is None:
            return
        tasks.context.stop.set()
        results = await asyncio.gather(*tasks.tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"slot {slot}: task ended with error: {result}")
        logger.info(f"slot {slot}: tasks stopped")
