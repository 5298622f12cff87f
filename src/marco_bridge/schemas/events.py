"""Canonical event models exchanged across the bridge.

Outbound events travel from Matrix to the Minecraft plugin and are serialized
as JSON when the plugin polls ``GET /chat``. Inbound events are built from the
plugin's HTTP requests and never leave the process.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from marco_bridge.services.players import Player


class Sender(BaseModel):
    """The Matrix user who originated an event."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    mxid: str = Field(..., description="Full Matrix ID, @localpart:homeserver.")
    display_name: str = Field(..., alias="displayName")


class PlayerInfo(BaseModel):
    """Wire form of a player reference."""

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    uuid: str | None = None


class _OutboundBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    sender: Sender


class TextMessageEvent(_OutboundBase):
    """A normal text message sent from a Matrix user."""

    type: Literal["message.text"] = "message.text"
    body: str


class EmoteMessageEvent(_OutboundBase):
    """An emote (/me) sent from a Matrix user."""

    type: Literal["message.emote"] = "message.emote"
    body: str


class AnnounceMessageEvent(_OutboundBase):
    """An announcement sent by a sufficiently privileged Matrix user."""

    type: Literal["message.announce"] = "message.announce"
    body: str


class KickPlayerEvent(_OutboundBase):
    """A player's puppet was kicked from the room; the server may kick them too."""

    type: Literal["player.kick"] = "player.kick"
    player: PlayerInfo
    reason: str | None = None


class BanPlayerEvent(_OutboundBase):
    """A player's puppet was banned from the room."""

    type: Literal["player.ban"] = "player.ban"
    player: PlayerInfo
    reason: str | None = None


class UnbanPlayerEvent(_OutboundBase):
    """A player's puppet was unbanned from the room."""

    type: Literal["player.unban"] = "player.unban"
    player: PlayerInfo


OutboundEvent = Annotated[
    Union[
        TextMessageEvent,
        EmoteMessageEvent,
        AnnounceMessageEvent,
        KickPlayerEvent,
        BanPlayerEvent,
        UnbanPlayerEvent,
    ],
    Field(discriminator="type"),
]


@dataclass(frozen=True)
class OutboundMessage:
    """A translated room event ready for queueing.

    ``line`` is the chat rendering (``"<name> hello"``) used for logging and
    for plugins that print raw lines; ``event`` is what the plugin receives.
    """

    room_id: str
    sender: str
    event: OutboundEvent
    line: str | None = None


@dataclass(frozen=True)
class ChatInbound:
    """A player said something in the Minecraft chat."""

    player: Player
    message: str


@dataclass(frozen=True)
class JoinInbound:
    """A player joined the Minecraft server."""

    player: Player


@dataclass(frozen=True)
class QuitInbound:
    """A player left the Minecraft server."""

    player: Player


@dataclass(frozen=True)
class KickInbound:
    """A player was kicked from the Minecraft server."""

    player: Player
    reason: str


InboundEvent = Union[ChatInbound, JoinInbound, QuitInbound, KickInbound]
