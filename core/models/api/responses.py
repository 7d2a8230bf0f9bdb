"""API response models."""

from pydantic import BaseModel, Field

from core.models.domain.quota import QuotaUpdateEvent


class MonitoringActionResponse(BaseModel):
    """Response for start/stop requests."""

    success: bool
    message: str
    monitoring: bool
    running_slots: list[int] = Field(default_factory=list)


class WarmupResult(BaseModel):
    """Outcome of a warm-up request for one slot."""

    slot: int
    label: str
    success: bool
    error: str | None = None


class WarmupResponse(BaseModel):
    """Outcome of a warm-up request for every enabled slot."""

    results: list[WarmupResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> int:
        """Number of slots warmed up successfully."""
        return sum(1 for result in self.results if result.success)

    @property
    def failed(self) -> int:
        """Number of slots whose warm-up failed."""
        return len(self.results) - self.succeeded


class QuotaEventsResponse(BaseModel):
    """Latest quota update event of each slot."""

    events: list[QuotaUpdateEvent] = Field(default_factory=list)
