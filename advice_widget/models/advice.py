"""Pydantic models for the advice slip API"""

from pydantic import BaseModel, ConfigDict, Field


class AdvicePayload(BaseModel):
    """One advice slip as returned by the remote API"""

    model_config = ConfigDict(frozen=True)

    id: int = Field(description="Opaque slip identifier supplied by the API")
    advice: str = Field(min_length=1, description="The advice text")


class AdviceSlipResponse(BaseModel):
    """Response envelope: {"slip": {"id": ..., "advice": ...}}"""

    slip: AdvicePayload


class AdviceFetchResult(BaseModel):
    """Result of fetching one advice slip"""

    success: bool = Field(description="Whether a slip was fetched and decoded")

    slip: AdvicePayload | None = Field(default=None, description="Decoded slip (None on failure)")

    status: int | None = Field(
        default=None, description="HTTP status code (None if no response was received)"
    )

    error_message: str | None = Field(default=None, description="Error message if fetch failed")

    fetch_duration_ms: float = Field(ge=0.0, description="Time taken to fetch in milliseconds")
