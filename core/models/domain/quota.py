"""Quota snapshot and notification models."""

from pydantic import BaseModel, Field


class QuotaSnapshot(BaseModel):
    """Result of a successful quota fetch."""

    percentage: int = Field(ge=0, le=100, description="Used share of the quota window")
    timer_active: bool = Field(description="Whether a quota window is running")
    next_reset_hms: str | None = Field(
        default=None, description="Local HH:MM:SS of the next reset"
    )
    next_reset_epoch_ms: int | None = Field(
        default=None, description="Next reset time in epoch milliseconds"
    )


class QuotaUpdateEvent(BaseModel):
    """Notification emitted once per successful quota fetch."""

    slot: int
    percentage: int
    timer_active: bool
    next_reset_hms: str | None = None
    next_reset_epoch_ms: int | None = None

    @classmethod
    def from_snapshot(cls, slot: int, snapshot: QuotaSnapshot) -> "QuotaUpdateEvent":
        """Create an event for a slot from a quota snapshot."""
        return cls(slot=slot, **snapshot.model_dump())
