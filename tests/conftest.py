"""Global pytest configuration and fixtures."""

from collections.abc import Callable, Generator
from datetime import datetime, timedelta
from logging import Logger
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from core import setup_test_logging
from core.models.domain.quota import QuotaSnapshot
from core.models.domain.slot import EnginePolicy, SlotConfig
from core.scheduler import (
    Clock,
    EngineNotifier,
    RuntimeStatusStore,
    SchedulerTiming,
    SlotContext,
    Watch,
)


class ManualClock(Clock):
    """Clock that only moves when a test advances it."""

    def __init__(self, now: datetime, monotonic: float = 10_000.0) -> None:
        self._now = now
        self._monotonic = monotonic

    def now(self) -> datetime:
        return self._now

    def monotonic(self) -> float:
        return self._monotonic

    def advance(self, minutes: float = 0.0, seconds: float = 0.0) -> None:
        delta = minutes * 60 + seconds
        self._now += timedelta(seconds=delta)
        self._monotonic += delta

    def set_now(self, now: datetime) -> None:
        """Jump the wall clock (monotonic time follows the same delta)."""
        self._monotonic += (now - self._now).total_seconds()
        self._now = now


class FakeQuotaClient:
    """In-memory quota/wake client with scripted results.

    ``quota_results`` and ``wake_results`` are consumed in order; once empty,
    ``default_quota`` / ``default_wake`` are used. Exceptions are raised.
    """

    def __init__(self) -> None:
        self.quota_results: list[QuotaSnapshot | Exception] = []
        self.wake_results: list[Exception | None] = []
        self.default_quota: QuotaSnapshot | Exception = QuotaSnapshot(
            percentage=10, timer_active=False
        )
        self.default_wake: Exception | None = None
        self.quota_calls: list[int] = []
        self.wake_calls: list[int] = []
        self.warmup_calls: list[int] = []

    async def fetch_quota(self, slot: SlotConfig) -> QuotaSnapshot:
        self.quota_calls.append(slot.slot)
        result = self.quota_results.pop(0) if self.quota_results else self.default_quota
        if isinstance(result, Exception):
            raise result
        return result

    async def send_wake(self, slot: SlotConfig) -> None:
        self.wake_calls.append(slot.slot)
        result = self.wake_results.pop(0) if self.wake_results else self.default_wake
        if result is not None:
            raise result

    async def warmup(self, slot: SlotConfig) -> None:
        self.warmup_calls.append(slot.slot)
        result = self.wake_results.pop(0) if self.wake_results else self.default_wake
        if result is not None:
            raise result


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Setup test logging for all tests."""
    setup_test_logging()


@pytest.fixture(scope="function")
def logger() -> Logger:
    """Provide a logger instance for tests."""
    from core import get_logger

    return get_logger("test")


@pytest.fixture
def base_time() -> datetime:
    """A fixed local wall-clock time."""
    return datetime(2025, 3, 14, 9, 30, 0)


@pytest.fixture
def clock(base_time: datetime) -> ManualClock:
    """Manually advanced clock starting at ``base_time``."""
    return ManualClock(base_time)


@pytest.fixture
def fast_timing() -> SchedulerTiming:
    """Timing where one scheduling minute lasts 10 ms."""
    return SchedulerTiming(seconds_per_minute=0.01, wake_tick_seconds=0.01)


@pytest.fixture
def fake_client() -> FakeQuotaClient:
    """Scripted quota/wake client."""
    return FakeQuotaClient()


@pytest.fixture
def make_slot() -> Callable[..., SlotConfig]:
    """Factory for an active slot configuration."""

    def _make(slot: int = 1, **overrides: Any) -> SlotConfig:
        values: dict[str, Any] = {
            "slot": slot,
            "name": f"key{slot}",
            "enabled": True,
            "api_key": f"test-key-{slot}",
            "poll_interval_minutes": 30,
        }
        values.update(overrides)
        return SlotConfig(**values)

    return _make


@pytest.fixture
def policy() -> EnginePolicy:
    """Default engine policy."""
    return EnginePolicy()


@pytest.fixture
def make_context(
    fake_client: FakeQuotaClient,
    clock: ManualClock,
    policy: EnginePolicy,
) -> Callable[..., SlotContext]:
    """Factory for a slot context wired to the fake client and manual clock."""

    def _make(
        cfg: SlotConfig,
        engine_policy: EnginePolicy | None = None,
        timing: SchedulerTiming | None = None,
        runtime: RuntimeStatusStore | None = None,
        notifier: EngineNotifier | None = None,
    ) -> SlotContext:
        return SlotContext(
            slot=cfg.slot,
            client=fake_client,
            config=Watch(cfg),
            policy=Watch(engine_policy or policy),
            runtime=runtime or RuntimeStatusStore(),
            notifier=notifier or EngineNotifier(),
            clock=clock,
            timing=timing or SchedulerTiming(),
        )

    return _make


def epoch_ms(moment: datetime) -> int:
    """Epoch milliseconds of a local datetime."""
    return int(moment.timestamp() * 1000)


@pytest.fixture
def to_epoch_ms() -> Callable[[datetime], int]:
    """Convert a local datetime to epoch milliseconds."""
    return epoch_ms


@pytest.fixture
def settings_file(tmp_path: Path) -> Path:
    """Isolated settings file location."""
    return tmp_path / "settings.json"


@pytest.fixture
def client(
    settings_file: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[TestClient, None, None]:
    """API test client with an isolated settings file and no autostart."""
    from api.app import create_app

    monkeypatch.setenv("QUOTAWAKE_ENV", "testing")
    monkeypatch.setenv("QUOTAWAKE_SETTINGS_PATH", str(settings_file))
    monkeypatch.setenv("QUOTAWAKE_DEBUG", "true")
    with TestClient(create_app()) as test_client:
        yield test_client
