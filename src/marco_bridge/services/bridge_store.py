"""Durable storage of bridge links."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marco_bridge.core.errors import NotBridgedError
from marco_bridge.models import BridgeLink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Bridge:
    """An established link between a room and a plugin.

    Attributes:
        id: The signed bridge token, also used as the plugin's bearer credential.
        room_id: The Matrix room on the other side.
    """

    id: str
    room_id: str


class BridgeStore:
    """Maps bridge tokens to rooms, one bridge per room.

    Every mutation commits before returning so later reads never see a
    half-created bridge.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def put(self, token: str, room_id: str) -> bool:
        """Insert a new bridge row.

        Returns False without changing anything when the token or the room
        is already present.
        """
        if self.db.get(BridgeLink, token) is not None:
            return False
        self.db.add(BridgeLink(id=token, room=room_id))
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.debug("Rejected duplicate bridge row for room %s", room_id)
            return False
        return True

    def get(self, token: str) -> Bridge:
        """Return the bridge for ``token``.

        Raises:
            NotBridgedError: If the token is unknown.
        """
        row = self.db.get(BridgeLink, token)
        if row is None:
            raise NotBridgedError()
        return Bridge(id=row.id, room_id=row.room)

    def get_by_room(self, room_id: str) -> Bridge:
        """Return the bridge for ``room_id``.

        Raises:
            NotBridgedError: If the room is not bridged.
        """
        row = self.db.scalar(select(BridgeLink).where(BridgeLink.room == room_id))
        if row is None:
            raise NotBridgedError()
        return Bridge(id=row.id, room_id=row.room)

    def has_room(self, room_id: str) -> bool:
        return self.db.scalar(select(BridgeLink.id).where(BridgeLink.room == room_id)) is not None

    def has_token(self, token: str) -> bool:
        return self.db.scalar(select(BridgeLink.id).where(BridgeLink.id == token)) is not None

    def remove_by_room(self, room_id: str) -> bool:
        """Delete the bridge of ``room_id``; True iff a row was removed."""
        result = self.db.execute(delete(BridgeLink).where(BridgeLink.room == room_id))
        self.db.commit()
        return bool(result.rowcount)
