"""Analytics event payloads."""
from pydantic import BaseModel, Field


class ClientEventPayload(BaseModel):
    """Model for an analytics event reported by a client."""

    event: str = Field(..., min_length=1)
    ts: str | None = None
    sessionId: str | None = None
    properties: dict[str, object] = Field(default_factory=dict)
