"""In-room commands.

Users talk to the bridge with ``!minecraft <subcommand>`` to establish a
bridge, break it, or send an announcement to the Minecraft server. Every
command is handled in one shot; nothing carries over between messages.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from marco_bridge.core.errors import AlreadyBridgedError, RoomResolutionError, RoomServiceError
from marco_bridge.core.settings import Settings, settings
from marco_bridge.services.bridge_manager import BridgeManager
from marco_bridge.services.matrix import MatrixRoomService
from marco_bridge.services.translator import EventTranslator

logger = logging.getLogger(__name__)

DEFAULT_STATE_POWER = 50
DEFAULT_USER_POWER = 0

HELP_TEXT = (
    "Command List:\n"
    " - bridge <room ID>: This will provide an access token to give a"
    " Minecraft server to send and retrieve messages in the room with.\n"
    " - unbridge [<room ID>]: This will forcefully invalidate any tokens"
    " corresponding with this room\n"
    " - announce <...announcement>: This will send an announcement as"
    ' "Server". Send this command in a bridged room.'
)
NOT_WHITELISTED = "You are not whitelisted in the bridge config"
ALREADY_BRIDGED = "This room is already bridged to a server."
NOT_BRIDGED = "This room isn't bridged."
NEVER_BRIDGED = "The room was never bridged."
UNBRIDGED = "Room has been unbridged."
ANNOUNCED = "Sent!"
GENERIC_FAILURE = "Something went wrong"


@dataclass(frozen=True)
class CommandContext:
    """One incoming command: where it came from and its arguments."""

    room_id: str
    sender: str
    body: str
    args: list[str] = field(default_factory=list)

    @classmethod
    def parse(cls, room_id: str, sender: str, body: str) -> "CommandContext":
        return cls(room_id=room_id, sender=sender, body=body, args=body.split())

    @property
    def subcommand(self) -> str | None:
        return self.args[1] if len(self.args) > 1 else None

    def arg(self, index: int) -> str | None:
        return self.args[index] if len(self.args) > index else None

    def remainder(self, index: int) -> str:
        """Text from the ``index``-th argument to the end, spacing preserved."""
        parts = self.body.strip().split(None, index)
        return parts[index] if len(parts) > index else ""


class CommandInterpreter:
    """Parses commands, checks privilege and drives the bridge manager."""

    def __init__(
        self,
        room_service: MatrixRoomService,
        bridges: BridgeManager,
        translator: EventTranslator,
        config: Settings | None = None,
    ) -> None:
        self.room_service = room_service
        self.bridges = bridges
        self.translator = translator
        self.config = config or settings

    @property
    def prefix(self) -> str:
        return self.config.command_prefix

    def is_command(self, body: str) -> bool:
        """True if ``body`` is addressed to the bridge."""
        words = body.split(None, 1)
        return bool(words) and words[0] == self.prefix

    async def handle(self, room_id: str, sender: str, body: str) -> None:
        """Run the command in ``body``; replies go to ``room_id`` as notices."""
        ctx = CommandContext.parse(room_id, sender, body)
        if not ctx.args or ctx.args[0] != self.prefix:
            return

        logger.info("Command %r from %s in %s", ctx.subcommand, sender, room_id)
        subcommand = ctx.subcommand
        if subcommand == "bridge":
            await self.bridge(ctx)
        elif subcommand == "unbridge":
            await self.unbridge(ctx)
        elif subcommand == "announce":
            await self.announce(ctx)
        else:
            await self.room_service.send_notice(room_id, HELP_TEXT)

    def check_whitelist(self, user_id: str) -> bool:
        """True if the user is whitelisted or the whitelist is empty."""
        whitelist = self.config.user_whitelist
        return not whitelist or user_id in whitelist

    async def check_privilege(self, room_id: str, target: str, user_id: str) -> bool:
        """True if ``user_id`` may send state events in ``target``.

        Tells ``room_id`` the required level when the check fails.
        """
        power_levels = await self.room_service.get_power_levels(target)
        state_default = power_levels.get("state_default")
        required = DEFAULT_STATE_POWER if state_default is None else int(state_default)
        users = power_levels.get("users") or {}
        user_power = int(users.get(user_id, DEFAULT_USER_POWER) or DEFAULT_USER_POWER)

        if user_power < required:
            await self.room_service.send_notice(
                room_id,
                f"You need a higher power level (<{required})",
            )
            return False
        return True

    async def bridge_error(self, room_id: str, err: Exception) -> None:
        """Tell the room what went wrong without exposing internals."""
        if isinstance(err, AlreadyBridgedError):
            await self.room_service.send_notice(room_id, ALREADY_BRIDGED)
        elif isinstance(err, RoomResolutionError):
            await self.room_service.send_notice(room_id, HELP_TEXT)
        elif isinstance(err, RoomServiceError) and str(err):
            await self.room_service.send_notice(room_id, f"{GENERIC_FAILURE}: {err}")
        else:
            logger.exception("Unexpected failure handling command in %s", room_id, exc_info=err)
            await self.room_service.send_notice(room_id, GENERIC_FAILURE)

    async def bridge(self, ctx: CommandContext) -> None:
        """``bridge <room>``: mint a token for the target room."""
        if not self.check_whitelist(ctx.sender):
            await self.room_service.send_notice(ctx.room_id, NOT_WHITELISTED)
            return

        try:
            target = await self.room_service.resolve_room(ctx.arg(2) or "")

            # The bot must already be in the target room for its power levels to be current.
            joined = await self.room_service.get_joined_rooms()
            if target not in joined:
                await self.room_service.send_notice(
                    ctx.room_id,
                    "Bridge bot is not in that room. "
                    f"Please invite {self.room_service.user_id} to the room and try again.",
                )
                return

            if not await self.check_privilege(ctx.room_id, target, ctx.sender):
                return

            bridge = self.bridges.bridge(target)
            await self.room_service.send_notice(
                ctx.room_id,
                'Bridged! Go-to the Minecraft server and execute "/bridge <token>"\n'
                f"{bridge.id}",
            )
        except Exception as err:  # noqa: BLE001 - every failure becomes a notice
            await self.bridge_error(ctx.room_id, err)

    async def unbridge(self, ctx: CommandContext) -> None:
        """``unbridge [<room>]``: break the bridge of the target or current room."""
        try:
            target = await self.room_service.resolve_room(ctx.arg(2) or ctx.room_id)

            if not await self.check_privilege(ctx.room_id, target, ctx.sender):
                return

            bridge_id = None
            if self.bridges.is_room_bridged(target):
                bridge_id = self.bridges.get_room_bridge(target).id

            if self.bridges.unbridge(target):
                if bridge_id is not None:
                    self.translator.queue.discard(bridge_id)
                await self.room_service.send_notice(ctx.room_id, UNBRIDGED)
            else:
                await self.room_service.send_notice(ctx.room_id, NEVER_BRIDGED)
        except Exception as err:  # noqa: BLE001 - every failure becomes a notice
            await self.bridge_error(ctx.room_id, err)

    async def announce(self, ctx: CommandContext) -> None:
        """``announce <text>``: send text to the server as "Server"."""
        try:
            if not await self.check_privilege(ctx.room_id, ctx.room_id, ctx.sender):
                return

            if not self.bridges.is_room_bridged(ctx.room_id):
                await self.room_service.send_notice(ctx.room_id, NOT_BRIDGED)
                return

            bridge = self.bridges.get_room_bridge(ctx.room_id)
            message = self.translator.build_announcement(
                ctx.room_id,
                ctx.sender,
                ctx.remainder(2),
            )
            self.translator.enqueue(bridge, message)
            await self.room_service.send_notice(ctx.room_id, ANNOUNCED)
        except Exception as err:  # noqa: BLE001 - every failure becomes a notice
            await self.bridge_error(ctx.room_id, err)
