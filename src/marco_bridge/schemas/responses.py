"""Response bodies of the plugin-facing HTTP API."""
from __future__ import annotations

from pydantic import BaseModel, Field

from marco_bridge.schemas.events import OutboundEvent


class ErrorBody(BaseModel):
    """Typed error returned by every failing endpoint."""

    error: str = Field(..., description="SCREAMING_SNAKE error code.")
    message: str = Field(..., description="Human readable explanation.")


class VibeCheckResponse(BaseModel):
    """The token is good and unlocks this room."""

    status: str = "OK"
    bridge: str


class ChatEventsResponse(BaseModel):
    """Events that happened in the room since the last poll."""

    events: list[OutboundEvent] = Field(default_factory=list)
