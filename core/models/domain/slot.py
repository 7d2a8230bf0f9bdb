"""Slot configuration and engine policy models."""

from pydantic import BaseModel, Field

from core.constants import (
    DEFAULT_MAX_CONSECUTIVE_ERRORS,
    DEFAULT_POLL_INTERVAL_MINUTES,
    DEFAULT_QUOTA_POLL_BACKOFF_CAP_MINUTES,
    DEFAULT_QUOTA_URL,
    DEFAULT_REQUEST_URL,
    DEFAULT_SCHEDULE_AFTER_RESET_MINUTES,
    DEFAULT_SCHEDULE_INTERVAL_MINUTES,
    DEFAULT_WAKE_QUOTA_RETRY_WINDOW_MINUTES,
    MAX_CONSECUTIVE_ERRORS_LIMIT,
    MAX_INTERVAL_MINUTES,
    MAX_SCHEDULE_TIMES,
    MAX_SLOT_NAME_LENGTH,
    MAX_SLOTS,
)
from core.log import get_logger
from core.utils import is_valid_hhmm

logger = get_logger(__name__)


class SlotConfig(BaseModel):
    """Configuration for one credential slot."""

    slot: int = Field(default=1, description="1-based slot identity")
    name: str = Field(default="", description="Display name")
    enabled: bool = Field(default=False, description="Whether the slot is monitored")
    api_key: str = Field(default="", description="API key used for both endpoints")
    quota_url: str = Field(default=DEFAULT_QUOTA_URL, description="Quota endpoint")
    request_url: str | None = Field(
        default=DEFAULT_REQUEST_URL, description="Endpoint used for wake requests"
    )

    # Schedule modes - any subset may be enabled at once
    schedule_interval_enabled: bool = False
    schedule_times_enabled: bool = False
    schedule_after_reset_enabled: bool = False

    # Mode-specific settings
    schedule_interval_minutes: int = DEFAULT_SCHEDULE_INTERVAL_MINUTES
    schedule_times: list[str] = Field(default_factory=list)
    schedule_after_reset_minutes: int = DEFAULT_SCHEDULE_AFTER_RESET_MINUTES
    poll_interval_minutes: int = DEFAULT_POLL_INTERVAL_MINUTES

    logging: bool = Field(
        default=False, description="Log upstream requests and responses verbosely"
    )

    @property
    def has_key(self) -> bool:
        """Check whether an API key is configured."""
        return bool(self.api_key.strip())

    @property
    def is_active(self) -> bool:
        """Check whether the slot should have running tasks."""
        return self.enabled and self.has_key

    @property
    def any_schedule_enabled(self) -> bool:
        """Check whether at least one wake mode is enabled."""
        return (
            self.schedule_interval_enabled
            or self.schedule_times_enabled
            or self.schedule_after_reset_enabled
        )

    @property
    def label(self) -> str:
        """Short display label (name, or k<slot>)."""
        return self.name or f"k{self.slot}"


class EnginePolicy(BaseModel):
    """Global, hot-reloadable scheduling policy."""

    max_consecutive_errors: int = Field(default=DEFAULT_MAX_CONSECUTIVE_ERRORS, ge=1)
    quota_poll_backoff_cap_minutes: int = Field(
        default=DEFAULT_QUOTA_POLL_BACKOFF_CAP_MINUTES, ge=1
    )
    wake_quota_retry_window_minutes: int = Field(
        default=DEFAULT_WAKE_QUOTA_RETRY_WINDOW_MINUTES, ge=1
    )


def default_slots() -> list[SlotConfig]:
    """Build the default slot list (ids 1..MAX_SLOTS)."""
    return [SlotConfig(slot=idx + 1) for idx in range(MAX_SLOTS)]


class AppConfig(BaseModel):
    """Persisted application configuration."""

    slots: list[SlotConfig] = Field(default_factory=default_slots)
    global_quota_url: str = DEFAULT_QUOTA_URL
    global_request_url: str = DEFAULT_REQUEST_URL
    max_consecutive_errors: int = DEFAULT_MAX_CONSECUTIVE_ERRORS
    quota_poll_backoff_cap_minutes: int = DEFAULT_QUOTA_POLL_BACKOFF_CAP_MINUTES
    wake_quota_retry_window_minutes: int = DEFAULT_WAKE_QUOTA_RETRY_WINDOW_MINUTES

    @property
    def policy(self) -> EnginePolicy:
        """Extract the engine policy from the config."""
        return EnginePolicy(
            max_consecutive_errors=max(1, self.max_consecutive_errors),
            quota_poll_backoff_cap_minutes=max(1, self.quota_poll_backoff_cap_minutes),
            wake_quota_retry_window_minutes=max(
                1, self.wake_quota_retry_window_minutes
            ),
        )

    def get_slot(self, slot: int) -> SlotConfig | None:
        """Find a slot by its 1-based id."""
        return next((s for s in self.slots if s.slot == slot), None)

    @property
    def active_slots(self) -> list[SlotConfig]:
        """Slots that are enabled and have a key."""
        return [s for s in self.slots if s.is_active]


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def is_valid_url(url: str, allow_http: bool = False) -> bool:
    """Check that a URL uses https (or http when allowed)."""
    if url.startswith("https://"):
        return True
    return allow_http and url.startswith("http://")


def normalize_app_config(config: AppConfig, allow_http: bool = False) -> AppConfig:
    """Clamp, trim and sanitise every field so the engine can trust it.

    Out-of-range numbers are clamped rather than rejected; invalid URLs fall
    back to the global (or built-in) defaults; malformed schedule times are
    dropped.

    Args:
        config: Configuration as loaded or submitted
        allow_http: Accept plain http:// URLs (debug/mock servers)

    Returns:
        A sanitised copy of the configuration
    """
    cfg = config.model_copy(deep=True)

    global_quota = cfg.global_quota_url.strip()
    if not is_valid_url(global_quota, allow_http):
        logger.warning(
            f"config: invalid global_quota_url '{cfg.global_quota_url}', "
            "resetting to default"
        )
        global_quota = DEFAULT_QUOTA_URL
    cfg.global_quota_url = global_quota

    global_request = cfg.global_request_url.strip()
    if not is_valid_url(global_request, allow_http):
        logger.warning(
            f"config: invalid global_request_url '{cfg.global_request_url}', "
            "resetting to default"
        )
        global_request = DEFAULT_REQUEST_URL
    cfg.global_request_url = global_request

    cfg.max_consecutive_errors = _clamp(
        cfg.max_consecutive_errors, 1, MAX_CONSECUTIVE_ERRORS_LIMIT
    )
    cfg.quota_poll_backoff_cap_minutes = _clamp(
        cfg.quota_poll_backoff_cap_minutes, 1, MAX_INTERVAL_MINUTES
    )
    cfg.wake_quota_retry_window_minutes = _clamp(
        cfg.wake_quota_retry_window_minutes, 1, MAX_INTERVAL_MINUTES
    )

    if len(cfg.slots) > MAX_SLOTS:
        logger.warning(f"config: truncating {len(cfg.slots)} slots to {MAX_SLOTS}")
        cfg.slots = cfg.slots[:MAX_SLOTS]
    while len(cfg.slots) < MAX_SLOTS:
        cfg.slots.append(SlotConfig())

    for idx, slot in enumerate(cfg.slots):
        slot.slot = idx + 1
        slot.name = slot.name.strip()[:MAX_SLOT_NAME_LENGTH]
        slot.api_key = slot.api_key.strip()

        if not is_valid_url(slot.quota_url.strip(), allow_http):
            if slot.quota_url.strip():
                logger.warning(
                    f"slot {slot.slot}: invalid quota_url '{slot.quota_url}', "
                    "resetting to default"
                )
            slot.quota_url = cfg.global_quota_url
        else:
            slot.quota_url = slot.quota_url.strip()

        if slot.request_url is None or not is_valid_url(
            slot.request_url.strip(), allow_http
        ):
            if slot.request_url:
                logger.warning(
                    f"slot {slot.slot}: invalid request_url '{slot.request_url}', "
                    "resetting to default"
                )
            slot.request_url = cfg.global_request_url
        else:
            slot.request_url = slot.request_url.strip()

        slot.poll_interval_minutes = _clamp(
            slot.poll_interval_minutes, 1, MAX_INTERVAL_MINUTES
        )
        slot.schedule_interval_minutes = _clamp(
            slot.schedule_interval_minutes, 1, MAX_INTERVAL_MINUTES
        )
        slot.schedule_after_reset_minutes = _clamp(
            slot.schedule_after_reset_minutes, 1, MAX_INTERVAL_MINUTES
        )

        times: list[str] = []
        for value in slot.schedule_times[:MAX_SCHEDULE_TIMES]:
            value = value.strip()
            if not value:
                continue
            if not is_valid_hhmm(value):
                logger.warning(
                    f"slot {slot.slot}: dropping invalid schedule_time '{value}'"
                )
                continue
            times.append(value)
        slot.schedule_times = times

        if slot.enabled and not slot.api_key:
            logger.warning(f"slot {slot.slot}: no API key, force-disabling")
            slot.enabled = False

    return cfg
