"""Models handed to the widget host"""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator


class RenderEntry(BaseModel):
    """A single snapshot for the rendering layer"""

    timestamp: datetime = Field(description="When the entry was produced")
    advice: str = Field(description="Text to display")


class ScheduleDecision(BaseModel):
    """Entries to show plus the instant the host should ask again"""

    entries: list[RenderEntry] = Field(min_length=1, description="Entries in display order")
    next_refresh_at: datetime = Field(description="When the host should call schedule() again")
    cache_hit: bool = Field(
        default=False, description="Whether the cached advice was used without fetching"
    )

    @model_validator(mode="after")
    def _refresh_after_last_entry(self) -> "ScheduleDecision":
        if self.next_refresh_at < self.entries[-1].timestamp:
            raise ValueError("next_refresh_at must not precede the last entry")
        return self


class RefreshAck(BaseModel):
    """Acknowledgment of a manual refresh request"""

    invalidated: bool = Field(default=True, description="Cache was cleared")
    requested_at: datetime = Field(description="When the refresh was requested")
