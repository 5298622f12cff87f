# src/marco_bridge/api/endpoints/vibecheck.py
"""Client to server integrity check for the Minecraft plugin."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request

from marco_bridge.api.dependencies import CurrentBridgeDep
from marco_bridge.schemas.responses import ErrorBody, VibeCheckResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["plugin"])


@router.get(
    "/vibecheck",
    response_model=VibeCheckResponse,
    responses={401: {"model": ErrorBody}, 500: {"model": ErrorBody}},
)
async def vibe_check(request: Request, bridge: CurrentBridgeDep) -> VibeCheckResponse:
    """Tell the plugin which room its token is bridged with.

    If the token passes authentication we're vibing, otherwise not so much.
    """
    logger.info("[Request %s]: Finished", request.state.request_id)
    return VibeCheckResponse(status="OK", bridge=bridge.room_id)
