"""Bridge lifecycle management.

The BridgeManager validates bridging between a Minecraft server and the
corresponding Matrix room. Everything that adds, removes or checks a bridge
goes through it.
"""

from __future__ import annotations

import logging

from marco_bridge.core.errors import (
    AlreadyBridgedError,
    InvalidCredentialError,
    MarcoError,
    NotBridgedError,
)
from marco_bridge.services.bridge_store import Bridge, BridgeStore
from marco_bridge.services.credentials import CredentialCodec

logger = logging.getLogger(__name__)


class BridgeManager:
    """Creates, looks up and tears down bridges."""

    def __init__(self, store: BridgeStore, codec: CredentialCodec) -> None:
        self.store = store
        self.codec = codec

    def bridge(self, room_id: str) -> Bridge:
        """Establish a bridge for ``room_id``.

        Raises:
            AlreadyBridgedError: If the room already has a live bridge.
        """
        if self.store.has_room(room_id):
            raise AlreadyBridgedError(room_id)

        token = self.codec.issue(room_id)
        if not self.store.put(token, room_id):
            # Lost a race against a concurrent bridge() for the same room.
            if self.store.has_room(room_id):
                raise AlreadyBridgedError(room_id)
            raise MarcoError("Could not persist bridge token")

        logger.info("Bridged room %s", room_id)
        return Bridge(id=token, room_id=room_id)

    def unbridge(self, room_id: str) -> bool:
        """Break the bridge of ``room_id``; returns whether one existed."""
        removed = self.store.remove_by_room(room_id)
        if removed:
            logger.info("Unbridged room %s", room_id)
        return removed

    def get_bridge(self, token: str) -> Bridge:
        """Return the bridge a plugin token unlocks.

        Forged and unknown tokens both raise NotBridgedError so callers can't
        tell which check failed.

        Raises:
            NotBridgedError: If the token is unknown or fails verification.
        """
        try:
            room_id = self.codec.verify(token)
        except InvalidCredentialError as err:
            logger.warning("Rejected bridge token with bad signature: %s", err)
            raise NotBridgedError() from err

        bridge = self.store.get(token)
        if bridge.room_id != room_id:
            logger.warning("Bridge token room mismatch for stored room %s", bridge.room_id)
            raise NotBridgedError()
        return bridge

    def get_room_bridge(self, room_id: str) -> Bridge:
        """Return the bridge of ``room_id`` or raise NotBridgedError."""
        return self.store.get_by_room(room_id)

    def is_bridged(self, token: str) -> bool:
        return self.store.has_token(token)

    def is_room_bridged(self, room_id: str) -> bool:
        return self.store.has_room(room_id)
