# src/marco_bridge/api/endpoints/appservice.py
"""Endpoints the homeserver calls on the bridge as an application service."""

from __future__ import annotations

import hmac
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, Query, status

from marco_bridge.api.dependencies import (
    DispatcherDep,
    JsonBodyDep,
    RegistrationDep,
    RoomServiceDep,
)
from marco_bridge.api.errors import ApiError
from marco_bridge.services.dispatcher import TransactionLog, get_transaction_log

logger = logging.getLogger(__name__)

router = APIRouter(tags=["appservice"])

TransactionLogDep = Annotated[TransactionLog, Depends(get_transaction_log)]


class MatrixError(ApiError):
    """Error answered in the Matrix ``{"errcode", "error"}`` shape."""

    def body(self) -> dict[str, str]:
        return {"errcode": self.error, "error": self.message}


def require_homeserver(
    registration: RegistrationDep,
    access_token: Annotated[str | None, Query()] = None,
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """Check the homeserver's hs_token from the query string or bearer header."""
    token = access_token
    if token is None and authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            token = parts[1]

    if token is None:
        raise MatrixError(status.HTTP_401_UNAUTHORIZED, "M_UNAUTHORIZED", "Missing access token")
    if not hmac.compare_digest(token, registration.hs_token):
        logger.warning("Rejected homeserver request with a bad hs_token")
        raise MatrixError(status.HTTP_403_FORBIDDEN, "M_FORBIDDEN", "Bad access token")


HomeserverDep = Annotated[None, Depends(require_homeserver)]


@router.put("/transactions/{txn_id}")
@router.put("/_matrix/app/v1/transactions/{txn_id}")
async def push_transaction(
    txn_id: str,
    _auth: HomeserverDep,
    body: JsonBodyDep,
    dispatcher: DispatcherDep,
    log: TransactionLogDep,
) -> dict[str, Any]:
    """Receive a batch of room events from the homeserver."""
    events = body.get("events") or []
    if not isinstance(events, list):
        events = []
    handled = await dispatcher.handle_transaction(
        txn_id,
        [event for event in events if isinstance(event, dict)],
        log,
    )
    logger.debug("Transaction %s: handled %d of %d events", txn_id, handled, len(events))
    return {}


@router.get("/users/{user_id}")
@router.get("/_matrix/app/v1/users/{user_id}")
async def query_user(
    user_id: str,
    _auth: HomeserverDep,
    room_service: RoomServiceDep,
) -> dict[str, Any]:
    """Tell the homeserver whether a user belongs to the bridge."""
    if room_service.player_uuid_for(user_id) is None:
        raise MatrixError(status.HTTP_404_NOT_FOUND, "M_NOT_FOUND", "No such user")
    return {}
