"""Application constants and configuration values."""

from typing import Final

# Number of credential slots managed by the engine
MAX_SLOTS: Final[int] = 5

# Wake scheduler evaluation period (seconds)
WAKE_TICK_SECONDS: Final[float] = 60.0

# Seconds in one scheduling minute
SECONDS_PER_MINUTE: Final[float] = 60.0

# Poll cadence while a wake confirmation window is open (minutes)
WAKE_CONFIRM_POLL_MINUTES: Final[int] = 1

# Backoff exponent ceiling: poll_interval * 2**min(errors, 6)
MAX_BACKOFF_EXPONENT: Final[int] = 6

# Policy defaults
DEFAULT_MAX_CONSECUTIVE_ERRORS: Final[int] = 10
DEFAULT_QUOTA_POLL_BACKOFF_CAP_MINUTES: Final[int] = 480
DEFAULT_WAKE_QUOTA_RETRY_WINDOW_MINUTES: Final[int] = 15

# Slot defaults
DEFAULT_POLL_INTERVAL_MINUTES: Final[int] = 30
DEFAULT_SCHEDULE_INTERVAL_MINUTES: Final[int] = 60
DEFAULT_SCHEDULE_AFTER_RESET_MINUTES: Final[int] = 1

# Validation bounds
MAX_INTERVAL_MINUTES: Final[int] = 1_440
MAX_CONSECUTIVE_ERRORS_LIMIT: Final[int] = 1_000
MAX_SCHEDULE_TIMES: Final[int] = 5
MAX_SLOT_NAME_LENGTH: Final[int] = 32

# Upstream endpoints (Z.ai platform)
DEFAULT_QUOTA_URL: Final[str] = "https://api.z.ai/api/monitor/usage/quota/limit"
DEFAULT_REQUEST_URL: Final[str] = (
    "https://api.z.ai/api/coding/paas/v4/chat/completions"
)
