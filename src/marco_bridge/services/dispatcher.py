"""Routing of homeserver events to commands and the translator."""

from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Iterable
from threading import Lock
from typing import Any

from marco_bridge.services.bridge_manager import BridgeManager
from marco_bridge.services.commands import CommandInterpreter
from marco_bridge.services.matrix import MatrixRoomService
from marco_bridge.services.translator import EventTranslator

logger = logging.getLogger(__name__)

MAX_REMEMBERED_TRANSACTIONS = 1000
COMMAND_MSGTYPES = ("m.text", "m.notice")


class TransactionLog:
    """Remembers recently processed transaction IDs; homeservers retry them."""

    def __init__(self, capacity: int = MAX_REMEMBERED_TRANSACTIONS) -> None:
        self.capacity = capacity
        self._seen: OrderedDict[str, None] = OrderedDict()
        self._lock = Lock()

    def mark(self, txn_id: str) -> bool:
        """Record ``txn_id``; False if it was already recorded."""
        with self._lock:
            if txn_id in self._seen:
                return False
            self._seen[txn_id] = None
            while len(self._seen) > self.capacity:
                self._seen.popitem(last=False)
            return True


class _TransactionLogSingleton:
    _instance: TransactionLog | None = None

    @classmethod
    def get_instance(cls) -> TransactionLog:
        if cls._instance is None:
            cls._instance = TransactionLog()
        return cls._instance


def get_transaction_log() -> TransactionLog:
    """Return the process-wide transaction log."""
    return _TransactionLogSingleton.get_instance()


class RoomEventDispatcher:
    """Sends each room event to the command interpreter or the translator."""

    def __init__(
        self,
        room_service: MatrixRoomService,
        bridges: BridgeManager,
        translator: EventTranslator,
        commands: CommandInterpreter,
    ) -> None:
        self.room_service = room_service
        self.bridges = bridges
        self.translator = translator
        self.commands = commands

    async def handle_transaction(
        self, txn_id: str, events: Iterable[dict[str, Any]], log: TransactionLog
    ) -> int:
        """Process a homeserver transaction once; returns the events handled."""
        if not log.mark(txn_id):
            logger.debug("Skipping already processed transaction %s", txn_id)
            return 0

        handled = 0
        for event in events:
            try:
                await self.handle_event(event)
                handled += 1
            except Exception:  # noqa: BLE001 - one bad event must not drop the rest
                logger.exception(
                    "Failed to handle event %s in transaction %s",
                    event.get("event_id"),
                    txn_id,
                )
        return handled

    async def handle_event(self, event: dict[str, Any]) -> None:
        room_id = event.get("room_id")
        sender = event.get("sender")
        if not isinstance(room_id, str) or not isinstance(sender, str):
            return

        event_type = event.get("type")
        content = event.get("content") or {}

        if event_type == "m.room.member" and event.get("state_key") == self.room_service.user_id:
            if content.get("membership") == "invite":
                logger.info("Invited to %s by %s, joining", room_id, sender)
                await self.room_service.join_room(room_id)
            return

        if event_type == "m.room.member":
            state_key = event.get("state_key")
            if (
                isinstance(state_key, str)
                and content.get("membership") != "join"
                and self.room_service.player_uuid_for(state_key) is not None
            ):
                self.room_service.forget_membership(room_id, state_key)

        if self.room_service.is_bridge_user(sender):
            return

        if event_type == "m.room.message" and content.get("msgtype") in COMMAND_MSGTYPES:
            body = content.get("body")
            if isinstance(body, str) and self.commands.is_command(body):
                await self.commands.handle(room_id, sender, body)
                return

        if not self.bridges.is_room_bridged(room_id):
            return

        message = await self.translator.translate_room_event(room_id, event)
        if message is None:
            return
        bridge = self.bridges.get_room_bridge(room_id)
        self.translator.enqueue(bridge, message)
