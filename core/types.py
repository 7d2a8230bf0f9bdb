"""Common type definitions for the quotawake system."""

from enum import Enum


class Environment(str, Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class ScheduleMode(str, Enum):
    """Wake trigger modes a slot can enable independently."""

    INTERVAL = "interval"
    TIMES = "times"
    AFTER_RESET = "after_reset"


class WakeConfirmation(str, Enum):
    """Outcome of checking a pending wake against a fresh quota snapshot."""

    CONFIRMED = "confirmed"
    MISSING_RESET = "missing_reset"
    NOT_ADVANCED = "not_advanced"
