"""Shared API dependencies for authentication and common functionality."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from typing import Annotated, Any

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from marco_bridge.api import errors
from marco_bridge.core.errors import (
    MarcoError,
    NotBridgedError,
    PlayerLookupTimeoutError,
    PlayerNotFoundError,
)
from marco_bridge.core.registration import Registration, load_registration
from marco_bridge.core.settings import settings
from marco_bridge.core.signing import load_signing_secret
from marco_bridge.db.session import get_db
from marco_bridge.schemas.events import InboundEvent
from marco_bridge.services.bridge_manager import BridgeManager
from marco_bridge.services.bridge_store import Bridge, BridgeStore
from marco_bridge.services.commands import CommandInterpreter
from marco_bridge.services.credentials import CredentialCodec
from marco_bridge.services.dispatcher import RoomEventDispatcher
from marco_bridge.services.matrix import MatrixRoomService, get_room_service
from marco_bridge.services.outbound_queue import OutboundQueue, get_outbound_queue
from marco_bridge.services.players import Player, PlayerResolver, get_player_resolver
from marco_bridge.services.translator import EventTranslator

logger = logging.getLogger(__name__)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


class _CodecSingleton:
    """Singleton wrapper for CredentialCodec."""

    _instance: CredentialCodec | None = None

    @classmethod
    def get_instance(cls) -> CredentialCodec:
        if cls._instance is None:
            cls._instance = CredentialCodec(load_signing_secret(), settings.jwt_algorithm)
        return cls._instance


class _RegistrationSingleton:
    _instance: Registration | None = None

    @classmethod
    def get_instance(cls) -> Registration:
        if cls._instance is None:
            cls._instance = load_registration()
        return cls._instance


def get_credential_codec() -> CredentialCodec:
    """Return the process-wide token codec."""
    return _CodecSingleton.get_instance()


def get_registration() -> Registration:
    """Return the appservice registration."""
    return _RegistrationSingleton.get_instance()


CodecDep = Annotated[CredentialCodec, Depends(get_credential_codec)]
RoomServiceDep = Annotated[MatrixRoomService, Depends(get_room_service)]
QueueDep = Annotated[OutboundQueue, Depends(get_outbound_queue)]
PlayerResolverDep = Annotated[PlayerResolver, Depends(get_player_resolver)]
RegistrationDep = Annotated[Registration, Depends(get_registration)]


def get_bridge_manager(db: SessionDep, codec: CodecDep) -> BridgeManager:
    """Build a bridge manager bound to the request's session."""
    return BridgeManager(BridgeStore(db), codec)


BridgeManagerDep = Annotated[BridgeManager, Depends(get_bridge_manager)]


def get_translator(
    room_service: RoomServiceDep,
    queue: QueueDep,
    players: PlayerResolverDep,
) -> EventTranslator:
    return EventTranslator(room_service, queue, players)


TranslatorDep = Annotated[EventTranslator, Depends(get_translator)]


def get_dispatcher(
    room_service: RoomServiceDep,
    bridges: BridgeManagerDep,
    translator: TranslatorDep,
) -> RoomEventDispatcher:
    commands = CommandInterpreter(room_service, bridges, translator)
    return RoomEventDispatcher(room_service, bridges, translator, commands)


DispatcherDep = Annotated[RoomEventDispatcher, Depends(get_dispatcher)]


def bearer_token(authorization: str | None) -> str:
    """Extract the token of an ``Authorization: Bearer <token>`` header.

    Raises:
        ApiError: NO_TOKEN when the header is missing or has no token.
    """
    if not authorization:
        raise errors.no_token()
    parts = authorization.split()
    if len(parts) < 2 or parts[0].lower() != "bearer":
        raise errors.no_token()
    return parts[1]


def get_current_bridge(
    request: Request,
    bridges: BridgeManagerDep,
    authorization: Annotated[str | None, Header()] = None,
) -> Bridge:
    """Authenticate the plugin and attach its bridge to the request.

    Raises:
        ApiError: 401 NO_TOKEN / INVALID_TOKEN, or 500 SERVER_ERROR.
    """
    request_id = uuid.uuid4().hex
    request.state.request_id = request_id
    logger.info("[Request %s]: Endpoint %s %s", request_id, request.method, request.url.path)

    token = bearer_token(authorization)
    try:
        bridge = bridges.get_bridge(token)
    except NotBridgedError as err:
        logger.warning("[Request %s]: Unauthorized", request_id)
        raise errors.invalid_token() from err
    except Exception as err:  # noqa: BLE001 - anything else is our fault
        logger.exception("[Request %s]: Failed to check token", request_id)
        raise errors.server_error() from err

    logger.info("[Request %s]: Authorized", request_id)
    request.state.bridge = bridge
    return bridge


CurrentBridgeDep = Annotated[Bridge, Depends(get_current_bridge)]


async def get_json_body(request: Request) -> dict[str, Any]:
    """Return the request body as a JSON object or fail with NO_BODY."""
    try:
        body = await request.json()
    except ValueError as err:
        raise errors.no_body() from err
    if not isinstance(body, dict):
        raise errors.no_body()
    return body


JsonBodyDep = Annotated[dict[str, Any], Depends(get_json_body)]


def string_field(
    body: dict[str, Any],
    name: str,
    missing: Callable[[], errors.ApiError],
    wrong_type: Callable[[], errors.ApiError],
) -> str:
    """Return a required string attribute of the body."""
    value = body.get(name)
    if value is None:
        raise missing()
    if not isinstance(value, str):
        raise wrong_type()
    return value


def player_identifier(body: dict[str, Any]) -> str:
    """Return ``body["player"]`` or fail with NO_PLAYER / PLAYER_TYPE."""
    return string_field(body, "player", errors.no_player, errors.player_type)


async def resolve_player(identifier: str, players: PlayerResolver) -> Player:
    """Resolve a plugin-supplied player name or UUID.

    Raises:
        ApiError: NO_PLAYER_ID, PLAYER_LOOKUP_TIMEOUT or SERVER_ERROR.
    """
    try:
        return await players.get_player(identifier)
    except PlayerNotFoundError as err:
        raise errors.no_player_id() from err
    except PlayerLookupTimeoutError as err:
        raise errors.player_lookup_timeout() from err
    except MarcoError as err:
        logger.error("Player lookup failed: %s", err)
        raise errors.server_error() from err


async def deliver_inbound(
    request: Request,
    translator: EventTranslator,
    bridge: Bridge,
    inbound: InboundEvent,
) -> None:
    """Hand an inbound event to the translator, mapping failures to SERVER_ERROR."""
    request_id = getattr(request.state, "request_id", None)
    try:
        await translator.deliver(bridge, inbound)
    except MarcoError as err:
        logger.error("[Request %s]: Could not deliver to %s: %s", request_id, bridge.room_id, err)
        raise errors.server_error() from err
    logger.info("[Request %s]: Finished", request_id)
