"""Minecraft player identities.

A Player is known by a name, a UUID, or both. Filling in the missing half
takes a call to the Mojang API (credit to wiki.vg for mapping the endpoints),
so the PlayerResolver caches what it learns.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from urllib.parse import quote

import httpx

from marco_bridge.core.errors import (
    MarcoError,
    PlayerLookupTimeoutError,
    PlayerNotFoundError,
)
from marco_bridge.core.settings import settings

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 16

# Playername -> UUID
UUID_ENDPOINT = "/users/profiles/minecraft/{name}"
# UUID -> Profile + Skin/Cape
PROFILE_ENDPOINT = "/session/minecraft/profile/{uuid}"

HTTP_OK = 200
HTTP_NO_CONTENT = 204
HTTP_BAD_REQUEST = 400
HTTP_NOT_FOUND = 404


def normalize_uuid(value: str) -> str:
    """Return the undashed lowercase form Mojang uses for player UUIDs."""
    return value.replace("-", "").lower()


def looks_like_uuid(identifier: str) -> bool:
    """Player names are at most 16 characters; anything longer is a UUID."""
    return len(identifier) > MAX_NAME_LENGTH


@dataclass(frozen=True, eq=False)
class Player:
    """A Minecraft player reference; either field may be missing."""

    name: str | None = None
    uuid: str | None = None

    def __post_init__(self) -> None:
        if not self.name and not self.uuid:
            raise ValueError("A player needs a name or a UUID")

    @property
    def key(self) -> str:
        """Identity key: the UUID when known, otherwise the lowercased name."""
        if self.uuid:
            return self.uuid
        return (self.name or "").lower()

    @property
    def is_resolved(self) -> bool:
        return bool(self.name and self.uuid)

    @property
    def display_name(self) -> str:
        return self.name or self.uuid or ""

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Player):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)


class PlayerResolver:
    """Resolves and caches player identities against the Mojang API."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        api_url: str | None = None,
        session_url: str | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self.api_url = (api_url or settings.mojang_api_url).rstrip("/")
        self.session_url = (session_url or settings.mojang_session_url).rstrip("/")
        self.timeout_seconds = timeout_seconds or settings.player_lookup_timeout_seconds
        self._client = client
        self._owns_client = client is None
        self._client_lock = asyncio.Lock()
        self._by_uuid: dict[str, Player] = {}
        self._uuid_by_name: dict[str, str] = {}

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout_seconds))
        return self._client

    def cached(self, identifier: str) -> Player | None:
        """Return a fully resolved cached player for ``identifier``, if any."""
        if looks_like_uuid(identifier):
            return self._by_uuid.get(normalize_uuid(identifier))
        uuid = self._uuid_by_name.get(identifier.lower())
        return self._by_uuid.get(uuid) if uuid else None

    def remember(self, player: Player) -> None:
        """Store a resolved player in the cache."""
        if not player.name or not player.uuid:
            return
        self._by_uuid[player.uuid] = player
        self._uuid_by_name[player.name.lower()] = player.uuid

    async def get_player(self, identifier: str) -> Player:
        """Return a resolved player from a name or UUID.

        Raises:
            PlayerNotFoundError: If Mojang has no such player.
            PlayerLookupTimeoutError: If Mojang did not answer in time.
        """
        identifier = identifier.strip()
        if not identifier:
            raise PlayerNotFoundError(identifier)

        hit = self.cached(identifier)
        if hit is not None:
            return hit

        if looks_like_uuid(identifier):
            player = Player(uuid=normalize_uuid(identifier))
        else:
            player = Player(name=identifier)
        return await self.resolve(player)

    async def resolve(self, player: Player) -> Player:
        """Return ``player`` with both name and UUID filled in."""
        if player.is_resolved:
            self.remember(player)
            return player

        if player.uuid:
            hit = self._by_uuid.get(player.uuid)
            if hit is not None:
                return hit
            payload = await self._get_json(
                self.session_url + PROFILE_ENDPOINT.format(uuid=quote(player.uuid, safe="")),
                player.uuid,
            )
            resolved = Player(name=str(payload["name"]), uuid=player.uuid)
        elif player.name:
            hit = self.cached(player.name)
            if hit is not None:
                return hit
            payload = await self._get_json(
                self.api_url + UUID_ENDPOINT.format(name=quote(player.name, safe="")),
                player.name,
            )
            resolved = Player(
                name=str(payload["name"]),
                uuid=normalize_uuid(str(payload["id"])),
            )
        else:
            raise PlayerNotFoundError(player.display_name)

        self.remember(resolved)
        logger.debug("Resolved player %s (%s)", resolved.name, resolved.uuid)
        return resolved

    async def _get_json(self, url: str, identifier: str) -> dict:
        client = await self._ensure_client()
        try:
            response = await client.get(url, timeout=self.timeout_seconds)
        except httpx.TimeoutException as exc:
            raise PlayerLookupTimeoutError(identifier) from exc
        except httpx.HTTPError as exc:
            raise MarcoError(f"Player lookup failed: {exc}") from exc

        if response.status_code in (HTTP_NO_CONTENT, HTTP_NOT_FOUND, HTTP_BAD_REQUEST):
            raise PlayerNotFoundError(identifier)
        if response.status_code != HTTP_OK:
            raise MarcoError(f"Mojang responded with {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise MarcoError("Mojang returned malformed JSON") from exc
        if not isinstance(payload, dict) or "id" not in payload or "name" not in payload:
            raise PlayerNotFoundError(identifier)
        return payload

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None and self._owns_client:
                await self._client.aclose()
            self._client = None


class _PlayerResolverSingleton:
    """Singleton wrapper for PlayerResolver."""

    _instance: PlayerResolver | None = None

    @classmethod
    def get_instance(cls) -> PlayerResolver:
        if cls._instance is None:
            cls._instance = PlayerResolver()
        return cls._instance


def get_player_resolver() -> PlayerResolver:
    """Return a singleton player resolver instance."""
    return _PlayerResolverSingleton.get_instance()


async def close_player_resolver() -> None:
    """Close the singleton resolver if it was ever created."""
    resolver = _PlayerResolverSingleton._instance
    if resolver is not None:
        await resolver.close()
        _PlayerResolverSingleton._instance = None
