"""API request and response models."""

from .responses import (
    MonitoringActionResponse,
    QuotaEventsResponse,
    WarmupResponse,
    WarmupResult,
)

__all__ = [
    "MonitoringActionResponse",
    "QuotaEventsResponse",
    "WarmupResponse",
    "WarmupResult",
]
