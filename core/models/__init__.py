"""Unified models package for quotawake system."""

# API models (responses)
from core.models.api.responses import (
    MonitoringActionResponse,
    QuotaEventsResponse,
    WarmupResponse,
    WarmupResult,
)

# Domain models (core business logic)
from core.models.domain.quota import QuotaSnapshot, QuotaUpdateEvent
from core.models.domain.slot import (
    AppConfig,
    EnginePolicy,
    SlotConfig,
    normalize_app_config,
)
from core.models.domain.status import RuntimeStatus, SlotRuntimeStatus
from core.models.domain.tray import TraySummary

# External API models
from core.models.external.zai import QuotaApiResponse, QuotaData, QuotaLimit

__all__ = [
    # Domain models
    "AppConfig",
    "EnginePolicy",
    "SlotConfig",
    "normalize_app_config",
    "QuotaSnapshot",
    "QuotaUpdateEvent",
    "RuntimeStatus",
    "SlotRuntimeStatus",
    "TraySummary",
    # API models
    "MonitoringActionResponse",
    "QuotaEventsResponse",
    "WarmupResponse",
    "WarmupResult",
    # External models
    "QuotaApiResponse",
    "QuotaData",
    "QuotaLimit",
]
