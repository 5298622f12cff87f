# src/marco_bridge/api/endpoints/chat.py
"""Chat endpoints: polling room events and posting Minecraft chat."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request, Response, status

from marco_bridge.api import errors
from marco_bridge.api.dependencies import (
    CurrentBridgeDep,
    JsonBodyDep,
    PlayerResolverDep,
    QueueDep,
    TranslatorDep,
    deliver_inbound,
    player_identifier,
    resolve_player,
    string_field,
)
from marco_bridge.schemas.events import ChatInbound
from marco_bridge.schemas.responses import ChatEventsResponse, ErrorBody

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["plugin"])

ERROR_RESPONSES = {
    400: {"model": ErrorBody},
    401: {"model": ErrorBody},
    500: {"model": ErrorBody},
    503: {"model": ErrorBody},
}


@router.get("", response_model=ChatEventsResponse, responses=ERROR_RESPONSES)
async def retrieve_events(
    request: Request,
    bridge: CurrentBridgeDep,
    queue: QueueDep,
) -> ChatEventsResponse:
    """Return and clear every room event since the plugin last polled."""
    events = queue.drain(bridge.id)
    logger.info("[Request %s]: Delivered %d events", request.state.request_id, len(events))
    return ChatEventsResponse(events=events)


@router.post("", status_code=status.HTTP_200_OK, responses=ERROR_RESPONSES)
async def submit_chat(
    request: Request,
    bridge: CurrentBridgeDep,
    body: JsonBodyDep,
    players: PlayerResolverDep,
    translator: TranslatorDep,
) -> Response:
    """Relay a Minecraft chat line into the bridged room.

    Example body::

        {"message": "<player message string>", "player": "<name or UUID>"}
    """
    message = string_field(body, "message", errors.no_message, errors.message_type)
    identifier = player_identifier(body)
    logger.debug("[Request %s]: Message %r", request.state.request_id, message)

    player = await resolve_player(identifier, players)
    await deliver_inbound(request, translator, bridge, ChatInbound(player=player, message=message))
    return Response(status_code=status.HTTP_200_OK)
