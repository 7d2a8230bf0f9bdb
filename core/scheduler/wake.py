"""Wake scheduler: decides when to send a wake request for one slot."""

from datetime import datetime

from core.log import get_logger
from core.models.domain.slot import EnginePolicy, SlotConfig
from core.models.domain.status import SlotRuntimeStatus
from core.scheduler.context import SlotContext
from core.scheduler.schedule import (
    retry_window_elapsed,
    should_fire_wake,
    update_schedule_markers,
)
from core.scheduler.signals import wait_first
from upstream.exceptions import UpstreamError

logger = get_logger(__name__)


def should_retry_after_errors(status: SlotRuntimeStatus) -> bool:
    """A pending wake may be re-sent on a new trigger only after failures."""
    return status.wake_consecutive_errors > 0


def is_wake_halted(status: SlotRuntimeStatus) -> bool:
    """Check whether the slot no longer accepts wake activity."""
    return status.wake_auto_disabled or status.auto_disabled


async def is_wake_required(ctx: SlotContext, cfg: SlotConfig) -> bool:
    """Check whether the slot's quota window actually needs a wake.

    A cached reset time in the future means the window is already running,
    and no request is made. Otherwise the quota is fetched live; a failed
    fetch counts as "required" so that wakes are never silently skipped.

    Args:
        ctx: Slot context
        cfg: Current slot configuration

    Returns:
        True if a wake request should be sent
    """
    status = await ctx.runtime.get(ctx.slot)
    now_ms = ctx.clock.epoch_ms()
    cached = status.last_updated_epoch_ms
    if cached is not None and cached > now_ms:
        logger.debug(f"slot {ctx.slot}: quota window active until {cached}")
        return False

    try:
        snapshot = await ctx.client.fetch_quota(cfg)
    except UpstreamError as e:
        logger.warning(f"slot {ctx.slot}: quota check before wake failed: {e}")
        return True
    except Exception as e:
        logger.exception(f"slot {ctx.slot}: unexpected quota check error: {e}")
        return True

    await ctx.runtime.apply_quota(ctx.slot, snapshot)
    reset = snapshot.next_reset_epoch_ms
    return reset is None or reset <= now_ms


class WakeScheduler:
    """Per-slot loop that evaluates wake triggers once per tick."""

    def __init__(self, ctx: SlotContext) -> None:
        self.ctx = ctx
        self._config = ctx.config.subscribe()
        self._policy = ctx.policy.subscribe()

    async def run(self) -> None:
        """Run until stopped or until wakes are disabled for the slot."""
        ctx = self.ctx
        async with ctx.schedule.edit() as schedule:
            schedule.last_interval_fire = ctx.clock.monotonic()
        logger.info(f"slot {ctx.slot}: wake scheduler started")

        try:
            while not ctx.stop.is_set():
                if is_wake_halted(await ctx.runtime.get(ctx.slot)):
                    logger.info(
                        f"slot {ctx.slot}: wakes disabled, scheduler exiting"
                    )
                    break

                await self.tick()

                fired = await wait_first(
                    {
                        "stop": ctx.stop,
                        "config": self._config.changed,
                        "policy": self._policy.changed,
                    },
                    ctx.timing.wake_tick_seconds,
                )
                if fired == "stop":
                    break
                if fired == "config":
                    self._config.borrow_and_update()
                    logger.info(
                        f"slot {ctx.slot}: wake scheduler picked up new config"
                    )
                elif fired == "policy":
                    self._policy.borrow_and_update()
                    logger.info(
                        f"slot {ctx.slot}: wake scheduler picked up new policy"
                    )

            logger.info(f"slot {ctx.slot}: wake scheduler stopped")
        finally:
            self.close()

    def close(self) -> None:
        """Release this loop's watch subscriptions."""
        self._config.close()
        self._policy.close()

    async def tick(self) -> None:
        """Evaluate triggers once and send a wake if one is due."""
        ctx = self.ctx
        cfg = self._config.borrow()
        policy = self._policy.borrow()
        now = ctx.clock.now()
        mono = ctx.clock.monotonic()

        status = await ctx.runtime.get(ctx.slot)
        if is_wake_halted(status):
            return
        schedule = await ctx.schedule.snapshot()
        reason = should_fire_wake(cfg, schedule, now, mono, ctx.timing)

        forced = False
        if status.wake_pending:
            if (
                retry_window_elapsed(schedule, mono)
                and not schedule.wake_timeout_retry_fired
            ):
                forced = True
                reason = "confirmation window elapsed"
            elif reason is not None and not should_retry_after_errors(status):
                logger.info(
                    f"slot {ctx.slot}: wake already pending, "
                    f"suppressing trigger ({reason})"
                )
                async with ctx.schedule.edit() as live:
                    update_schedule_markers(cfg, live, now, mono, ctx.timing)
                return

        if reason is None:
            return

        if forced:
            async with ctx.schedule.edit() as live:
                live.wake_timeout_retry_fired = True
        elif not await is_wake_required(ctx, cfg):
            logger.info(
                f"slot {ctx.slot}: wake trigger ({reason}) skipped, "
                "quota window already running"
            )
            return

        await self._send(cfg, policy, reason, now, mono)

    async def _send(
        self,
        cfg: SlotConfig,
        policy: EnginePolicy,
        reason: str,
        now: datetime,
        mono: float,
    ) -> None:
        ctx = self.ctx
        logger.info(f"slot {ctx.slot}: sending wake ({reason})")
        try:
            await ctx.client.send_wake(cfg)
        except UpstreamError as e:
            await self._record_failure(str(e), policy)
            return
        except Exception as e:
            logger.exception(f"slot {ctx.slot}: unexpected wake error: {e}")
            await self._record_failure(f"wake request failed: {e}", policy)
            return

        async with ctx.schedule.edit() as schedule:
            update_schedule_markers(cfg, schedule, now, mono, ctx.timing)
            window = ctx.timing.minutes(policy.wake_quota_retry_window_minutes)
            schedule.wake_retry_window_deadline = mono + window
            reset_marker = schedule.next_reset_epoch_ms

        async with ctx.runtime.edit(ctx.slot) as status:
            new_episode = not status.wake_pending
            if new_episode:
                if status.last_updated_epoch_ms is not None:
                    status.wake_reset_epoch_ms = status.last_updated_epoch_ms
                else:
                    status.wake_reset_epoch_ms = reset_marker
            status.wake_pending = True

        if new_episode:
            async with ctx.schedule.edit() as schedule:
                schedule.wake_timeout_retry_fired = False

        logger.info(f"slot {ctx.slot}: wake sent, awaiting confirmation")
        ctx.poll_now.set()
        await ctx.refresh_tray()

    async def _record_failure(self, message: str, policy: EnginePolicy) -> None:
        ctx = self.ctx
        async with ctx.runtime.edit(ctx.slot) as status:
            status.wake_consecutive_errors += 1
            status.last_error = message
            errors = status.wake_consecutive_errors
            if errors >= policy.max_consecutive_errors:
                status.wake_auto_disabled = True
                status.wake_pending = False
            disabled = status.wake_auto_disabled

        logger.warning(
            f"slot {ctx.slot}: wake failed "
            f"({errors}/{policy.max_consecutive_errors}): {message}"
        )
        if disabled:
            logger.error(f"slot {ctx.slot}: too many wake errors, wakes paused")
        await ctx.refresh_tray()
