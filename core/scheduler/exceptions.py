"""Exceptions for the scheduling engine."""


class SchedulerError(Exception):
    """Base exception for scheduler lifecycle errors."""

    pass


class UnknownSlotError(SchedulerError):
    """Raised when a slot id is outside the configured slot range."""

    pass
