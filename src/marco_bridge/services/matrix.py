"""Homeserver client acting as the bridge appservice.

MatrixRoomService wraps the parts of the Matrix client-server API the bridge
uses: room resolution, membership and power-level queries, sending messages,
and driving the puppet users that stand in for Minecraft players.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any
from urllib.parse import quote

import httpx

from marco_bridge.core.errors import RoomResolutionError, RoomServiceError
from marco_bridge.core.registration import Registration, load_registration
from marco_bridge.core.settings import Settings, settings
from marco_bridge.services.players import Player

logger = logging.getLogger(__name__)

CLIENT_API = "/_matrix/client/v3"
HTTP_NOT_FOUND = 404
HTTP_BAD_REQUEST = 400

POWER_LEVELS = "m.room.power_levels"
ROOM_MEMBER = "m.room.member"


def _q(value: str) -> str:
    return quote(value, safe="")


class MatrixRoomService:
    """Appservice-authenticated client for the homeserver."""

    def __init__(
        self,
        registration: Registration,
        config: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or settings
        self.registration = registration
        self._client = client
        self._owns_client = client is None
        self._client_lock = asyncio.Lock()
        self._registered: set[str] = set()
        self._named: dict[str, str] = {}
        self._joined: set[tuple[str, str]] = set()

    @property
    def user_id(self) -> str:
        """Matrix ID of the bridge bot."""
        return f"@{self.registration.sender_localpart}:{self.config.homeserver_name}"

    # --- puppets ---------------------------------------------------------------
    def puppet_user_id(self, player_uuid: str) -> str:
        """Matrix ID of the puppet standing in for a player."""
        return f"@{self.config.puppet_prefix}{player_uuid}:{self.config.homeserver_name}"

    def player_uuid_for(self, user_id: str) -> str | None:
        """Return the player UUID behind a puppet ID, or None for real users."""
        prefix = f"@{self.config.puppet_prefix}"
        # The bot's localpart shares the puppet prefix.
        if user_id == self.user_id:
            return None
        suffix = f":{self.config.homeserver_name}"
        if not user_id.startswith(prefix) or not user_id.endswith(suffix):
            return None
        return user_id[len(prefix):-len(suffix)] or None

    def is_bridge_user(self, user_id: str) -> bool:
        """True for the bot and every puppet."""
        return user_id == self.user_id or self.player_uuid_for(user_id) is not None

    def forget_membership(self, room_id: str, user_id: str) -> None:
        """Drop the cached membership of ``user_id``; the next ensure_puppet joins again."""
        self._joined.discard((room_id, user_id))

    async def ensure_puppet(self, room_id: str, player: Player) -> str:
        """Make sure the player's puppet exists, is named after them and sits in the room."""
        if not player.uuid:
            raise ValueError("Cannot puppet a player without a UUID")
        user_id = self.puppet_user_id(player.uuid)

        if user_id not in self._registered:
            await self._register(f"{self.config.puppet_prefix}{player.uuid}")
            self._registered.add(user_id)

        if player.name and self._named.get(user_id) != player.name:
            await self._request(
                "PUT",
                f"{CLIENT_API}/profile/{_q(user_id)}/displayname",
                json={"displayname": player.name},
                as_user=user_id,
            )
            self._named[user_id] = player.name

        if (room_id, user_id) not in self._joined:
            await self.join_room(room_id, as_user=user_id)
        return user_id

    async def _register(self, localpart: str) -> None:
        try:
            await self._request(
                "POST",
                f"{CLIENT_API}/register",
                json={"type": "m.login.application_service", "username": localpart},
            )
        except RoomServiceError as err:
            if err.errcode != "M_USER_IN_USE":
                raise

    # --- queries ---------------------------------------------------------------
    async def resolve_room(self, reference: str) -> str:
        """Turn a room ID or alias into a room ID.

        Raises:
            RoomResolutionError: If the reference is malformed or unknown.
        """
        reference = reference.strip()
        if reference.startswith("!") and ":" in reference:
            return reference
        if not (reference.startswith("#") and ":" in reference):
            raise RoomResolutionError(reference)
        try:
            body = await self._request("GET", f"{CLIENT_API}/directory/room/{_q(reference)}")
        except RoomServiceError as err:
            if err.status_code in (HTTP_NOT_FOUND, HTTP_BAD_REQUEST):
                raise RoomResolutionError(reference) from err
            raise
        room_id = body.get("room_id")
        if not isinstance(room_id, str):
            raise RoomResolutionError(reference)
        return room_id

    async def get_joined_rooms(self) -> list[str]:
        body = await self._request("GET", f"{CLIENT_API}/joined_rooms")
        return list(body.get("joined_rooms") or [])

    async def get_room_state_event(
        self, room_id: str, event_type: str, state_key: str = ""
    ) -> dict[str, Any]:
        return await self._request(
            "GET",
            f"{CLIENT_API}/rooms/{_q(room_id)}/state/{_q(event_type)}/{_q(state_key)}",
        )

    async def get_power_levels(self, room_id: str) -> dict[str, Any]:
        return await self.get_room_state_event(room_id, POWER_LEVELS)

    async def get_display_name(self, room_id: str, user_id: str) -> str | None:
        """Return the member's room display name, or None when unset."""
        try:
            member = await self.get_room_state_event(room_id, ROOM_MEMBER, user_id)
        except RoomServiceError as err:
            if err.status_code == HTTP_NOT_FOUND:
                return None
            raise
        name = member.get("displayname")
        return name if isinstance(name, str) and name else None

    # --- actions ---------------------------------------------------------------
    async def send_notice(self, room_id: str, body: str) -> str:
        return await self._send_message(room_id, "m.notice", body)

    async def send_text(self, room_id: str, body: str, *, as_user: str | None = None) -> str:
        return await self._send_message(room_id, "m.text", body, as_user=as_user)

    async def join_room(self, room_id: str, *, as_user: str | None = None) -> None:
        member = as_user or self.user_id
        try:
            await self._request("POST", f"{CLIENT_API}/rooms/{_q(room_id)}/join", as_user=as_user)
        except RoomServiceError as err:
            if as_user is None or err.errcode != "M_FORBIDDEN":
                raise
            # Invite-only rooms: the bot lets its puppet in.
            await self._request(
                "POST",
                f"{CLIENT_API}/rooms/{_q(room_id)}/invite",
                json={"user_id": as_user},
            )
            await self._request("POST", f"{CLIENT_API}/rooms/{_q(room_id)}/join", as_user=as_user)
        self._joined.add((room_id, member))

    async def leave_room(
        self, room_id: str, *, as_user: str | None = None, reason: str | None = None
    ) -> None:
        payload: dict[str, Any] = {}
        if reason:
            payload["reason"] = reason
        await self._request(
            "POST",
            f"{CLIENT_API}/rooms/{_q(room_id)}/leave",
            json=payload,
            as_user=as_user,
        )
        self._joined.discard((room_id, as_user or self.user_id))

    async def _send_message(
        self, room_id: str, msgtype: str, body: str, *, as_user: str | None = None
    ) -> str:
        txn_id = uuid.uuid4().hex
        result = await self._request(
            "PUT",
            f"{CLIENT_API}/rooms/{_q(room_id)}/send/m.room.message/{txn_id}",
            json={"msgtype": msgtype, "body": body},
            as_user=as_user,
        )
        return str(result.get("event_id", ""))

    # --- transport -------------------------------------------------------------
    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.homeserver_url,
                    timeout=httpx.Timeout(self.config.homeserver_timeout_seconds),
                )
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any | None = None,
        as_user: str | None = None,
    ) -> dict[str, Any]:
        client = await self._ensure_client()
        params = {"user_id": as_user} if as_user else None
        headers = {"Authorization": f"Bearer {self.registration.as_token}"}
        try:
            response = await client.request(method, path, json=json, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise RoomServiceError(f"Homeserver request failed: {exc}") from exc

        try:
            body = response.json() if response.content else {}
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.is_error:
            message = body.get("error") or f"Homeserver responded with {response.status_code}"
            raise RoomServiceError(
                str(message),
                errcode=body.get("errcode"),
                status_code=response.status_code,
            )
        return body

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None and self._owns_client:
                await self._client.aclose()
            self._client = None


class _RoomServiceSingleton:
    """Singleton wrapper for MatrixRoomService."""

    _instance: MatrixRoomService | None = None

    @classmethod
    def get_instance(cls) -> MatrixRoomService:
        if cls._instance is None:
            cls._instance = MatrixRoomService(load_registration())
        return cls._instance


def get_room_service() -> MatrixRoomService:
    """Return the singleton homeserver client."""
    return _RoomServiceSingleton.get_instance()


async def close_room_service() -> None:
    """Close the singleton homeserver client if it was ever created."""
    service = _RoomServiceSingleton._instance
    if service is not None:
        await service.close()
        _RoomServiceSingleton._instance = None
