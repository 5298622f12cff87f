"""Translation between Matrix room events and Minecraft plugin events.

Outbound: raw m.room.message / m.room.member events become canonical
OutboundEvents queued for the plugin.
Inbound: the plugin's chat and presence reports become puppet actions in the
bridged room.
"""

from __future__ import annotations

import logging
from typing import Any

from marco_bridge.schemas.events import (
    AnnounceMessageEvent,
    BanPlayerEvent,
    ChatInbound,
    EmoteMessageEvent,
    InboundEvent,
    JoinInbound,
    KickInbound,
    KickPlayerEvent,
    OutboundEvent,
    OutboundMessage,
    PlayerInfo,
    QuitInbound,
    Sender,
    TextMessageEvent,
    UnbanPlayerEvent,
)
from marco_bridge.services.bridge_store import Bridge
from marco_bridge.services.matrix import MatrixRoomService
from marco_bridge.services.outbound_queue import OutboundQueue
from marco_bridge.services.players import Player, PlayerResolver

logger = logging.getLogger(__name__)


def _prev_content(event: dict[str, Any]) -> dict[str, Any]:
    """Prior membership state; homeservers put it at the top level or under unsigned."""
    return event.get("prev_content") or (event.get("unsigned") or {}).get("prev_content") or {}


class EventTranslator:
    """Converts events in both directions and buffers the outbound ones."""

    def __init__(
        self,
        room_service: MatrixRoomService,
        queue: OutboundQueue,
        players: PlayerResolver | None = None,
    ) -> None:
        self.room_service = room_service
        self.queue = queue
        self.players = players

    # --- room -> plugin --------------------------------------------------------
    async def _sender(self, room_id: str, user_id: str) -> Sender:
        name = await self.room_service.get_display_name(room_id, user_id)
        return Sender(mxid=user_id, display_name=name or user_id)

    async def build_text(self, room_id: str, event: dict[str, Any]) -> OutboundMessage:
        """m.text -> ``"<name> body"``"""
        sender = await self._sender(room_id, event["sender"])
        body = str(event.get("content", {}).get("body", ""))
        return OutboundMessage(
            room_id=room_id,
            sender=sender.mxid,
            line=f"<{sender.display_name}> {body}",
            event=TextMessageEvent(sender=sender, body=body),
        )

    async def build_emote(self, room_id: str, event: dict[str, Any]) -> OutboundMessage:
        """m.emote -> ``" * <name> body"``"""
        sender = await self._sender(room_id, event["sender"])
        body = str(event.get("content", {}).get("body", ""))
        return OutboundMessage(
            room_id=room_id,
            sender=sender.mxid,
            line=f" * <{sender.display_name}> {body}",
            event=EmoteMessageEvent(sender=sender, body=body),
        )

    def build_announcement(self, room_id: str, sender_id: str, body: str) -> OutboundMessage:
        return OutboundMessage(
            room_id=room_id,
            sender=sender_id,
            line=f"[Server] {body}",
            event=AnnounceMessageEvent(
                sender=Sender(mxid=sender_id, display_name=sender_id),
                body=body,
            ),
        )

    def _victim(self, event: dict[str, Any]) -> PlayerInfo | None:
        victim_uuid = self.room_service.player_uuid_for(str(event.get("state_key", "")))
        if victim_uuid is None:
            return None
        prev_content = _prev_content(event)
        victim_name = prev_content.get("displayname") or victim_uuid
        return PlayerInfo(name=victim_name, uuid=victim_uuid)

    async def build_membership(
        self, room_id: str, event: dict[str, Any]
    ) -> OutboundMessage | None:
        """Translate a puppet being kicked, banned or unbanned.

        Returns None for membership changes that don't concern a player.
        """
        victim = self._victim(event)
        if victim is None:
            return None

        content = event.get("content") or {}
        membership = content.get("membership")
        reason = content.get("reason")
        prev_membership = _prev_content(event).get("membership")
        sender_id = event["sender"]

        if membership == "ban":
            sender = await self._sender(room_id, sender_id)
            outbound = BanPlayerEvent(sender=sender, player=victim, reason=reason)
        elif membership == "leave" and prev_membership == "ban":
            sender = await self._sender(room_id, sender_id)
            outbound = UnbanPlayerEvent(sender=sender, player=victim)
        elif membership == "leave" and sender_id != event.get("state_key"):
            sender = await self._sender(room_id, sender_id)
            outbound = KickPlayerEvent(sender=sender, player=victim, reason=reason)
        else:
            return None

        return OutboundMessage(room_id=room_id, sender=sender_id, event=outbound)

    async def translate_room_event(
        self, room_id: str, event: dict[str, Any]
    ) -> OutboundMessage | None:
        """Build the outbound message for a raw room event, if it has one."""
        event_type = event.get("type")
        if event_type == "m.room.message":
            msgtype = (event.get("content") or {}).get("msgtype")
            if msgtype == "m.text":
                return await self.build_text(room_id, event)
            if msgtype == "m.emote":
                return await self.build_emote(room_id, event)
            return None
        if event_type == "m.room.member":
            return await self.build_membership(room_id, event)
        return None

    def enqueue(self, bridge: Bridge, message: OutboundMessage) -> None:
        """Buffer ``message`` until the plugin polls."""
        self.queue.enqueue(bridge.id, message.event)
        logger.debug(
            "Queued %s for room %s: %s",
            message.event.type,
            bridge.room_id,
            message.line or message.event.type,
        )

    def drain(self, bridge: Bridge) -> list[OutboundEvent]:
        return self.queue.drain(bridge.id)

    # --- plugin -> room --------------------------------------------------------
    async def resolve_player(self, identifier: str) -> Player:
        """Resolve a plugin-supplied name or UUID into a player."""
        if self.players is None:
            raise RuntimeError("No player resolver configured")
        return await self.players.get_player(identifier)

    async def deliver(self, bridge: Bridge, inbound: InboundEvent) -> None:
        """Carry out an inbound event in the bridged room."""
        room_id = bridge.room_id
        puppet = await self.room_service.ensure_puppet(room_id, inbound.player)

        if isinstance(inbound, ChatInbound):
            await self.room_service.send_text(room_id, inbound.message, as_user=puppet)
        elif isinstance(inbound, JoinInbound):
            # ensure_puppet already joined the room
            pass
        elif isinstance(inbound, QuitInbound):
            await self.room_service.leave_room(room_id, as_user=puppet)
        elif isinstance(inbound, KickInbound):
            await self.room_service.leave_room(
                room_id,
                as_user=puppet,
                reason=f"Kicked from the server: {inbound.reason}",
            )
        else:  # pragma: no cover - closed union
            raise TypeError(f"Unknown inbound event {inbound!r}")

        logger.debug(
            "Delivered %s from %s to %s",
            type(inbound).__name__,
            inbound.player.display_name,
            room_id,
        )
