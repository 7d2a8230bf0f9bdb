"""Utility functions for the application."""

from datetime import datetime

from core.log import get_logger

logger = get_logger(__name__)


def format_local_hm(moment: datetime) -> str:
    """Format a datetime as local ``HH:MM``."""
    return moment.strftime("%H:%M")


def times_marker(moment: datetime) -> str:
    """Build the ``YYYY-MM-DD-HH:MM`` dedup key for time-of-day wakes."""
    return f"{moment.strftime('%Y-%m-%d')}-{format_local_hm(moment)}"


def epoch_ms_to_local_hms(epoch_ms: int | None) -> str | None:
    """Convert an epoch timestamp in milliseconds to local ``HH:MM:SS``.

    Args:
        epoch_ms: Milliseconds since the Unix epoch

    Returns:
        Local wall-clock time, or None for missing/non-positive values
    """
    if epoch_ms is None or epoch_ms <= 0:
        return None
    try:
        return datetime.fromtimestamp(epoch_ms / 1000).strftime("%H:%M:%S")
    except (OverflowError, OSError, ValueError):
        logger.warning(f"Could not convert reset timestamp: {epoch_ms}")
        return None


def is_valid_hhmm(value: str) -> bool:
    """Check that a string is a ``HH:MM`` time between 00:00 and 23:59."""
    if len(value) != 5 or value[2] != ":":
        return False
    hours, minutes = value[:2], value[3:]
    if not (hours.isdigit() and minutes.isdigit()):
        return False
    return int(hours) < 24 and int(minutes) < 60
