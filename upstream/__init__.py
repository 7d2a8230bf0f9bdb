"""Upstream quota/wake API client."""

from .client import QuotaClient, QuotaWakeClient, WarmupClient, auth_header
from .exceptions import (
    QuotaFetchError,
    QuotaTimeoutError,
    UpstreamError,
    UpstreamTimeoutError,
    WakeRequestError,
    WakeTimeoutError,
)

__all__ = [
    "QuotaClient",
    "QuotaWakeClient",
    "WarmupClient",
    "auth_header",
    "QuotaFetchError",
    "QuotaTimeoutError",
    "UpstreamError",
    "UpstreamTimeoutError",
    "WakeRequestError",
    "WakeTimeoutError",
]
