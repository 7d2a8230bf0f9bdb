"""Core functionality for the quotawake system."""

from .config import Settings, settings
from .log import (
    get_logger,
    setup_logging,
    setup_production_logging,
    setup_test_logging,
)
from .types import Environment, ScheduleMode, WakeConfirmation

__all__ = [
    "Environment",
    "ScheduleMode",
    "Settings",
    "WakeConfirmation",
    "settings",
    "get_logger",
    "setup_logging",
    "setup_production_logging",
    "setup_test_logging",
]
