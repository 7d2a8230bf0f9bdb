"""Quota poller: keeps one slot's quota status fresh and confirms wakes."""

from core.constants import MAX_BACKOFF_EXPONENT, WAKE_CONFIRM_POLL_MINUTES
from core.log import get_logger
from core.models.domain.quota import QuotaSnapshot, QuotaUpdateEvent
from core.models.domain.slot import EnginePolicy, SlotConfig
from core.scheduler.context import SlotContext
from core.scheduler.runtime import apply_snapshot, confirm_wake
from core.scheduler.schedule import retry_window_open
from core.scheduler.signals import wait_first
from core.types import WakeConfirmation
from upstream.exceptions import UpstreamError

logger = get_logger(__name__)


def compute_backoff_minutes(
    poll_interval_minutes: int, consecutive_errors: int, cap_minutes: int
) -> int:
    """Exponential backoff after quota failures.

    Args:
        poll_interval_minutes: Normal poll interval
        consecutive_errors: Failures in a row so far
        cap_minutes: Upper bound for the result

    Returns:
        poll_interval * 2**min(errors, 6), capped
    """
    exponent = min(max(consecutive_errors, 0), MAX_BACKOFF_EXPONENT)
    return min(poll_interval_minutes * 2**exponent, cap_minutes)


class QuotaPoller:
    """Per-slot loop that fetches quota status on an adaptive cadence."""

    def __init__(self, ctx: SlotContext) -> None:
        self.ctx = ctx
        self._config = ctx.config.subscribe()
        self._policy = ctx.policy.subscribe()

    async def run(self) -> None:
        """Poll until stopped or until quota errors disable the slot."""
        ctx = self.ctx
        logger.info(f"slot {ctx.slot}: quota poller started")

        try:
            while not ctx.stop.is_set():
                sleep_minutes = await self.poll_once()
                if sleep_minutes is None:
                    break
                await ctx.refresh_tray()

                fired = await wait_first(
                    {
                        "stop": ctx.stop,
                        "config": self._config.changed,
                        "policy": self._policy.changed,
                        "poll_now": ctx.poll_now,
                    },
                    ctx.timing.minutes(sleep_minutes),
                )
                if fired == "stop":
                    break
                if fired == "config":
                    self._config.borrow_and_update()
                    logger.info(
                        f"slot {ctx.slot}: quota poller picked up new config"
                    )
                elif fired == "policy":
                    self._policy.borrow_and_update()
                    logger.info(
                        f"slot {ctx.slot}: quota poller picked up new policy"
                    )
                elif fired == "poll_now":
                    ctx.poll_now.clear()
                    logger.debug(f"slot {ctx.slot}: immediate poll requested")

            logger.info(f"slot {ctx.slot}: quota poller stopped")
        finally:
            self.close()

    def close(self) -> None:
        """Release this loop's watch subscriptions."""
        self._config.close()
        self._policy.close()

    async def poll_once(self) -> int | None:
        """Fetch quota once and update state.

        Returns:
            Minutes to sleep before the next poll, or None once the slot has
            been auto-disabled
        """
        ctx = self.ctx
        cfg = self._config.borrow()
        policy = self._policy.borrow()

        try:
            snapshot = await ctx.client.fetch_quota(cfg)
        except UpstreamError as e:
            return await self._on_failure(cfg, policy, str(e))
        except Exception as e:
            logger.exception(f"slot {ctx.slot}: unexpected quota error: {e}")
            return await self._on_failure(cfg, policy, f"quota request failed: {e}")

        await self._on_success(cfg, policy, snapshot)
        if await self._confirmation_window_open():
            return WAKE_CONFIRM_POLL_MINUTES
        return cfg.poll_interval_minutes

    async def _confirmation_window_open(self) -> bool:
        ctx = self.ctx
        status = await ctx.runtime.get(ctx.slot)
        if not status.wake_pending:
            return False
        schedule = await ctx.schedule.snapshot()
        return retry_window_open(schedule, ctx.clock.monotonic())

    async def _on_success(
        self, cfg: SlotConfig, policy: EnginePolicy, snapshot: QuotaSnapshot
    ) -> None:
        ctx = self.ctx
        async with ctx.schedule.edit() as schedule:
            schedule.next_reset_epoch_ms = snapshot.next_reset_epoch_ms

        outcome: WakeConfirmation | None = None
        async with ctx.runtime.edit(ctx.slot) as status:
            apply_snapshot(status, snapshot)
            status.name = cfg.name
            status.enabled = True
            status.quota_consecutive_errors = 0
            status.last_error = None
            if status.wake_pending:
                outcome = confirm_wake(
                    status,
                    snapshot.next_reset_epoch_ms,
                    policy.max_consecutive_errors,
                )
            wake_errors = status.wake_consecutive_errors
            wake_disabled = status.wake_auto_disabled

        logger.debug(
            f"slot {ctx.slot}: quota {snapshot.percentage}% "
            f"reset={snapshot.next_reset_hms or '--'}"
        )

        if outcome is WakeConfirmation.CONFIRMED:
            logger.info(f"slot {ctx.slot}: wake confirmed")
        elif outcome is not None:
            logger.warning(
                f"slot {ctx.slot}: wake not confirmed ({outcome.value}), "
                f"{wake_errors}/{policy.max_consecutive_errors}"
            )
            if wake_disabled:
                logger.error(f"slot {ctx.slot}: too many wake errors, wakes paused")

        if outcome is WakeConfirmation.CONFIRMED or wake_disabled:
            async with ctx.schedule.edit() as schedule:
                schedule.wake_retry_window_deadline = None
                schedule.wake_timeout_retry_fired = False

        await ctx.notifier.quota_updated(
            QuotaUpdateEvent.from_snapshot(ctx.slot, snapshot)
        )

    async def _on_failure(
        self, cfg: SlotConfig, policy: EnginePolicy, message: str
    ) -> int | None:
        ctx = self.ctx
        if await self._confirmation_window_open():
            async with ctx.runtime.edit(ctx.slot) as status:
                status.last_error = message
            logger.warning(
                f"slot {ctx.slot}: quota check failed during wake confirmation, "
                f"retrying in {WAKE_CONFIRM_POLL_MINUTES} min: {message}"
            )
            return WAKE_CONFIRM_POLL_MINUTES

        async with ctx.runtime.edit(ctx.slot) as status:
            status.quota_consecutive_errors += 1
            status.last_error = message
            errors = status.quota_consecutive_errors
            if errors >= policy.max_consecutive_errors:
                status.auto_disabled = True

        logger.warning(
            f"slot {ctx.slot}: quota poll failed "
            f"({errors}/{policy.max_consecutive_errors}): {message}"
        )
        if errors >= policy.max_consecutive_errors:
            logger.error(f"slot {ctx.slot}: too many quota errors, slot disabled")
            await ctx.refresh_tray()
            return None

        backoff = compute_backoff_minutes(
            cfg.poll_interval_minutes, errors, policy.quota_poll_backoff_cap_minutes
        )
        logger.info(f"slot {ctx.slot}: next quota poll in {backoff} min")
        return backoff
