"""Runtime status models read by the UI layer."""

from pydantic import BaseModel, Field

from core.constants import MAX_SLOTS


class SlotRuntimeStatus(BaseModel):
    """Externally visible state of one slot."""

    slot: int
    name: str = ""
    enabled: bool = False
    timer_active: bool = False
    percentage: int | None = None
    next_reset_hms: str | None = None
    last_error: str | None = None
    # Reset time of the current quota window (epoch ms)
    last_updated_epoch_ms: int | None = None

    quota_consecutive_errors: int = 0
    wake_consecutive_errors: int = 0

    wake_pending: bool = False
    # Reset marker observed when the pending wake was sent
    wake_reset_epoch_ms: int | None = None

    auto_disabled: bool = False
    wake_auto_disabled: bool = False

    @property
    def label(self) -> str:
        """Short display label (name, or k<slot>)."""
        return self.name or f"k{self.slot}"


def empty_slot_statuses() -> list[SlotRuntimeStatus]:
    """Build cleared status entries for every slot."""
    return [SlotRuntimeStatus(slot=idx + 1) for idx in range(MAX_SLOTS)]


class RuntimeStatus(BaseModel):
    """Snapshot of the whole engine."""

    monitoring: bool = False
    slots: list[SlotRuntimeStatus] = Field(default_factory=empty_slot_statuses)
