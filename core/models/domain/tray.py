"""Tray summary model."""

from pydantic import BaseModel, Field


class TraySummary(BaseModel):
    """Rendered tray tooltip and icon state."""

    lines: list[str] = Field(default_factory=list)
    alert: bool = False
    monitoring: bool = False

    @property
    def tooltip(self) -> str:
        """Tooltip text, one line per slot."""
        return "\n".join(self.lines)
