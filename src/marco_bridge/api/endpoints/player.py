# src/marco_bridge/api/endpoints/player.py
"""Player presence endpoints posted by the Minecraft plugin."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request, Response, status

from marco_bridge.api import errors
from marco_bridge.api.dependencies import (
    CurrentBridgeDep,
    JsonBodyDep,
    PlayerResolverDep,
    TranslatorDep,
    deliver_inbound,
    player_identifier,
    resolve_player,
    string_field,
)
from marco_bridge.schemas.events import JoinInbound, KickInbound, QuitInbound
from marco_bridge.schemas.responses import ErrorBody

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/player", tags=["plugin"])

ERROR_RESPONSES = {
    400: {"model": ErrorBody},
    401: {"model": ErrorBody},
    500: {"model": ErrorBody},
    503: {"model": ErrorBody},
}


@router.post("/join", status_code=status.HTTP_200_OK, responses=ERROR_RESPONSES)
async def player_join(
    request: Request,
    bridge: CurrentBridgeDep,
    body: JsonBodyDep,
    players: PlayerResolverDep,
    translator: TranslatorDep,
) -> Response:
    """A player joined the Minecraft server. Body: ``{"player": <name or UUID>}``"""
    player = await resolve_player(player_identifier(body), players)
    await deliver_inbound(request, translator, bridge, JoinInbound(player=player))
    return Response(status_code=status.HTTP_200_OK)


@router.post("/quit", status_code=status.HTTP_200_OK, responses=ERROR_RESPONSES)
async def player_quit(
    request: Request,
    bridge: CurrentBridgeDep,
    body: JsonBodyDep,
    players: PlayerResolverDep,
    translator: TranslatorDep,
) -> Response:
    """A player quit the Minecraft server. Body: ``{"player": <name or UUID>}``"""
    player = await resolve_player(player_identifier(body), players)
    await deliver_inbound(request, translator, bridge, QuitInbound(player=player))
    return Response(status_code=status.HTTP_200_OK)


@router.post("/kick", status_code=status.HTTP_200_OK, responses=ERROR_RESPONSES)
async def player_kick(
    request: Request,
    bridge: CurrentBridgeDep,
    body: JsonBodyDep,
    players: PlayerResolverDep,
    translator: TranslatorDep,
) -> Response:
    """A player got kicked from the Minecraft server.

    Example body::

        {"player": "<name or UUID>", "reason": "<kick reason string>"}
    """
    identifier = player_identifier(body)
    reason = string_field(body, "reason", errors.no_reason, errors.reason_type)
    logger.debug("[Request %s]: Reason %r", request.state.request_id, reason)

    player = await resolve_player(identifier, players)
    await deliver_inbound(request, translator, bridge, KickInbound(player=player, reason=reason))
    return Response(status_code=status.HTTP_200_OK)
