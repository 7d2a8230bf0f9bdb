"""Custom exceptions for the upstream quota/wake client."""


class UpstreamError(Exception):
    """Base exception for upstream request failures."""

    pass


class QuotaFetchError(UpstreamError):
    """Raised when the quota endpoint cannot be read."""

    pass


class WakeRequestError(UpstreamError):
    """Raised when a wake or warm-up request fails."""

    pass


class UpstreamTimeoutError(UpstreamError):
    """Raised when an upstream request times out."""

    pass


class QuotaTimeoutError(QuotaFetchError, UpstreamTimeoutError):
    """Raised when a quota request times out."""

    pass


class WakeTimeoutError(WakeRequestError, UpstreamTimeoutError):
    """Raised when a wake request times out."""

    pass
