"""Pydantic schemas for the Marco bridge."""

from .events import (
    AnnounceMessageEvent,
    BanPlayerEvent,
    EmoteMessageEvent,
    KickPlayerEvent,
    OutboundEvent,
    PlayerInfo,
    Sender,
    TextMessageEvent,
    UnbanPlayerEvent,
)
from .responses import ChatEventsResponse, ErrorBody, VibeCheckResponse

__all__ = [
    "AnnounceMessageEvent",
    "BanPlayerEvent",
    "ChatEventsResponse",
    "EmoteMessageEvent",
    "ErrorBody",
    "KickPlayerEvent",
    "OutboundEvent",
    "PlayerInfo",
    "Sender",
    "TextMessageEvent",
    "UnbanPlayerEvent",
    "VibeCheckResponse",
]
