"""Tests for the quota poller."""

import asyncio
from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest

from core.models.domain.quota import QuotaSnapshot, QuotaUpdateEvent
from core.models.domain.slot import EnginePolicy, SlotConfig
from core.scheduler.context import EngineNotifier, SlotContext
from core.scheduler.poller import QuotaPoller, compute_backoff_minutes
from core.scheduler.timing import SchedulerTiming
from upstream.exceptions import QuotaFetchError

from conftest import FakeQuotaClient, ManualClock


def _snapshot(reset: int | None, percentage: int = 20) -> QuotaSnapshot:
    return QuotaSnapshot(
        percentage=percentage,
        timer_active=reset is not None,
        next_reset_hms="12:00:00" if reset is not None else None,
        next_reset_epoch_ms=reset,
    )


async def _make_pending(ctx: SlotContext, reset: int | None = 5_000) -> None:
    async with ctx.runtime.edit(ctx.slot) as status:
        status.wake_pending = True
        status.wake_reset_epoch_ms = reset
    async with ctx.schedule.edit() as schedule:
        schedule.wake_retry_window_deadline = ctx.clock.monotonic() + 15 * 60


class TestBackoff:
    """Exponential backoff after quota failures."""

    @pytest.mark.parametrize(
        ("interval", "errors", "cap", "expected"),
        [
            (30, 0, 480, 30),
            (30, 1, 480, 60),
            (30, 3, 480, 240),
            (30, 5, 480, 480),
            (1, 6, 1440, 64),
            (1, 50, 1440, 64),
            (10, 2, 15, 15),
        ],
    )
    def test_compute_backoff_minutes(
        self, interval: int, errors: int, cap: int, expected: int
    ) -> None:
        assert compute_backoff_minutes(interval, errors, cap) == expected


class TestPollOnce:
    """Single poll outcomes."""

    @pytest.mark.asyncio
    async def test_success_updates_status_and_emits_event(
        self,
        make_context: Callable[..., SlotContext],
        make_slot: Callable[..., SlotConfig],
        fake_client: FakeQuotaClient,
    ) -> None:
        quota_cb = AsyncMock()
        ctx = make_context(
            make_slot(), notifier=EngineNotifier(on_quota_update=quota_cb)
        )
        async with ctx.runtime.edit(1) as status:
            status.quota_consecutive_errors = 4
            status.last_error = "old"
        fake_client.quota_results = [_snapshot(7_000, percentage=64)]

        sleep = await QuotaPoller(ctx).poll_once()

        assert sleep == 30
        status = await ctx.runtime.get(1)
        assert status.percentage == 64
        assert status.last_updated_epoch_ms == 7_000
        assert status.quota_consecutive_errors == 0
        assert status.last_error is None
        assert status.enabled is True
        assert ctx.schedule.state.next_reset_epoch_ms == 7_000
        quota_cb.assert_awaited_once_with(
            QuotaUpdateEvent(
                slot=1,
                percentage=64,
                timer_active=True,
                next_reset_hms="12:00:00",
                next_reset_epoch_ms=7_000,
            )
        )

    @pytest.mark.asyncio
    async def test_failure_backs_off(
        self,
        make_context: Callable[..., SlotContext],
        make_slot: Callable[..., SlotConfig],
        fake_client: FakeQuotaClient,
    ) -> None:
        ctx = make_context(make_slot())
        fake_client.default_quota = QuotaFetchError("HTTP 502")
        poller = QuotaPoller(ctx)

        sleeps = [await poller.poll_once() for _ in range(4)]

        assert sleeps == [60, 120, 240, 480]
        status = await ctx.runtime.get(1)
        assert status.quota_consecutive_errors == 4
        assert status.last_error == "HTTP 502"
        assert status.auto_disabled is False

    @pytest.mark.asyncio
    async def test_unexpected_error_is_counted(
        self,
        make_context: Callable[..., SlotContext],
        make_slot: Callable[..., SlotConfig],
        fake_client: FakeQuotaClient,
    ) -> None:
        ctx = make_context(make_slot())
        fake_client.quota_results = [KeyError("limits")]

        await QuotaPoller(ctx).poll_once()

        assert (await ctx.runtime.get(1)).quota_consecutive_errors == 1

    @pytest.mark.asyncio
    async def test_success_after_failures_resets_counter(
        self,
        make_context: Callable[..., SlotContext],
        make_slot: Callable[..., SlotConfig],
        fake_client: FakeQuotaClient,
    ) -> None:
        ctx = make_context(make_slot())
        fake_client.quota_results = [
            QuotaFetchError("a"),
            QuotaFetchError("b"),
            _snapshot(None),
            QuotaFetchError("c"),
        ]
        poller = QuotaPoller(ctx)
        seen = []
        for _ in range(4):
            await poller.poll_once()
            seen.append((await ctx.runtime.get(1)).quota_consecutive_errors)

        assert seen == [1, 2, 0, 1]

    @pytest.mark.asyncio
    async def test_ceiling_disables_slot(
        self,
        make_context: Callable[..., SlotContext],
        make_slot: Callable[..., SlotConfig],
        fake_client: FakeQuotaClient,
    ) -> None:
        tray = AsyncMock()
        ctx = make_context(
            make_slot(),
            engine_policy=EnginePolicy(max_consecutive_errors=2),
            notifier=EngineNotifier(on_tray_refresh=tray),
        )
        fake_client.default_quota = QuotaFetchError("HTTP 401")
        poller = QuotaPoller(ctx)

        assert await poller.poll_once() == 60
        assert await poller.poll_once() is None

        status = await ctx.runtime.get(1)
        assert status.auto_disabled is True
        assert status.quota_consecutive_errors == 2
        tray.assert_awaited()


class TestWakeConfirmation:
    """Confirmation of pending wakes by the poller."""

    @pytest.mark.asyncio
    async def test_unchanged_reset_counts_wake_errors(
        self,
        make_context: Callable[..., SlotContext],
        make_slot: Callable[..., SlotConfig],
        fake_client: FakeQuotaClient,
    ) -> None:
        ctx = make_context(make_slot())
        await _make_pending(ctx, reset=5_000)
        fake_client.default_quota = _snapshot(5_000)
        poller = QuotaPoller(ctx)

        for _ in range(3):
            assert await poller.poll_once() == 1

        status = await ctx.runtime.get(1)
        assert status.wake_consecutive_errors == 3
        assert status.wake_pending is True
        assert status.wake_auto_disabled is False

    @pytest.mark.asyncio
    async def test_advanced_reset_confirms(
        self,
        make_context: Callable[..., SlotContext],
        make_slot: Callable[..., SlotConfig],
        fake_client: FakeQuotaClient,
    ) -> None:
        ctx = make_context(make_slot())
        await _make_pending(ctx, reset=5_000)
        async with ctx.runtime.edit(1) as status:
            status.wake_consecutive_errors = 2
        async with ctx.schedule.edit() as schedule:
            schedule.wake_timeout_retry_fired = True
        fake_client.quota_results = [_snapshot(9_000)]

        sleep = await QuotaPoller(ctx).poll_once()

        assert sleep == 30
        status = await ctx.runtime.get(1)
        assert status.wake_pending is False
        assert status.wake_consecutive_errors == 0
        assert ctx.schedule.state.wake_retry_window_deadline is None
        assert ctx.schedule.state.wake_timeout_retry_fired is False

    @pytest.mark.asyncio
    async def test_wake_ceiling_pauses_wakes(
        self,
        make_context: Callable[..., SlotContext],
        make_slot: Callable[..., SlotConfig],
        fake_client: FakeQuotaClient,
    ) -> None:
        ctx = make_context(
            make_slot(), engine_policy=EnginePolicy(max_consecutive_errors=2)
        )
        await _make_pending(ctx, reset=5_000)
        fake_client.default_quota = _snapshot(None)
        poller = QuotaPoller(ctx)

        await poller.poll_once()
        await poller.poll_once()

        status = await ctx.runtime.get(1)
        assert status.wake_auto_disabled is True
        assert status.wake_pending is False
        assert status.auto_disabled is False

    @pytest.mark.asyncio
    async def test_soft_retry_inside_window(
        self,
        make_context: Callable[..., SlotContext],
        make_slot: Callable[..., SlotConfig],
        fake_client: FakeQuotaClient,
    ) -> None:
        ctx = make_context(make_slot())
        await _make_pending(ctx)
        fake_client.default_quota = QuotaFetchError("timed out")
        poller = QuotaPoller(ctx)

        for _ in range(20):
            assert await poller.poll_once() == 1

        status = await ctx.runtime.get(1)
        assert status.quota_consecutive_errors == 0
        assert status.auto_disabled is False
        assert status.last_error == "timed out"

    @pytest.mark.asyncio
    async def test_failures_count_after_window(
        self,
        make_context: Callable[..., SlotContext],
        make_slot: Callable[..., SlotConfig],
        fake_client: FakeQuotaClient,
        clock: ManualClock,
    ) -> None:
        ctx = make_context(make_slot())
        await _make_pending(ctx)
        fake_client.default_quota = QuotaFetchError("timed out")
        clock.advance(minutes=15)

        assert await QuotaPoller(ctx).poll_once() == 60
        assert (await ctx.runtime.get(1)).quota_consecutive_errors == 1


class TestPollerLoop:
    """The polling loop and its interrupts."""

    @pytest.mark.asyncio
    async def test_stops_after_max_consecutive_errors(
        self,
        make_context: Callable[..., SlotContext],
        make_slot: Callable[..., SlotConfig],
        fake_client: FakeQuotaClient,
        fast_timing: SchedulerTiming,
    ) -> None:
        ctx = make_context(
            make_slot(poll_interval_minutes=1),
            engine_policy=EnginePolicy(
                max_consecutive_errors=10, quota_poll_backoff_cap_minutes=1
            ),
            timing=fast_timing,
        )
        fake_client.default_quota = QuotaFetchError("HTTP 500")

        await asyncio.wait_for(QuotaPoller(ctx).run(), timeout=5.0)

        assert len(fake_client.quota_calls) == 10
        status = await ctx.runtime.get(1)
        assert status.auto_disabled is True
        assert status.quota_consecutive_errors == 10

        await asyncio.sleep(0.05)
        assert len(fake_client.quota_calls) == 10

    @pytest.mark.asyncio
    async def test_poll_now_interrupts_sleep(
        self,
        make_context: Callable[..., SlotContext],
        make_slot: Callable[..., SlotConfig],
        fake_client: FakeQuotaClient,
        fast_timing: SchedulerTiming,
    ) -> None:
        # 1440 minutes is 14.4 s with fast timing: far beyond the test
        ctx = make_context(make_slot(poll_interval_minutes=1440), timing=fast_timing)
        task = asyncio.create_task(QuotaPoller(ctx).run())
        await asyncio.sleep(0.05)
        assert fake_client.quota_calls == [1]

        ctx.poll_now.set()
        await asyncio.sleep(0.05)
        assert fake_client.quota_calls == [1, 1]
        assert not ctx.poll_now.is_set()

        ctx.stop.set()
        await asyncio.wait_for(task, timeout=1.0)

    @pytest.mark.asyncio
    async def test_config_change_interrupts_sleep(
        self,
        make_context: Callable[..., SlotContext],
        make_slot: Callable[..., SlotConfig],
        fake_client: FakeQuotaClient,
        fast_timing: SchedulerTiming,
    ) -> None:
        cfg = make_slot(poll_interval_minutes=1440)
        ctx = make_context(cfg, timing=fast_timing)
        task = asyncio.create_task(QuotaPoller(ctx).run())
        await asyncio.sleep(0.05)

        ctx.config.send(cfg.model_copy(update={"name": "renamed"}))
        await asyncio.sleep(0.05)

        assert len(fake_client.quota_calls) == 2
        assert (await ctx.runtime.get(1)).name == "renamed"

        ctx.stop.set()
        await asyncio.wait_for(task, timeout=1.0)
