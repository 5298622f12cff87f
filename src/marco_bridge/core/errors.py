"""Error taxonomy shared by the bridge services.

Every operation in the service layer raises one of these. Callers match on
the concrete class to pick a user-facing message; anything outside this
hierarchy is treated as unexpected.
"""

from __future__ import annotations


class MarcoError(RuntimeError):
    """Base class for all bridge-related failures."""


class AlreadyBridgedError(MarcoError):
    """Raised when a room already has a live bridge."""

    def __init__(self, room_id: str | None = None) -> None:
        super().__init__("This is already bridged")
        self.room_id = room_id


class NotBridgedError(MarcoError):
    """Raised when a token or room has no bridge."""

    def __init__(self, message: str = "This isn't bridged") -> None:
        super().__init__(message)


class InvalidCredentialError(MarcoError):
    """Raised when a bridge token fails signature or shape validation."""


class PlayerNotFoundError(MarcoError):
    """Raised when the identity service has no player for an identifier."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"No player found for {identifier!r}")
        self.identifier = identifier


class PlayerLookupTimeoutError(MarcoError):
    """Raised when the identity service did not answer in time."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"Timed out resolving player {identifier!r}")
        self.identifier = identifier


class RoomServiceError(MarcoError):
    """Raised when the homeserver rejects or fails a request."""

    def __init__(
        self,
        message: str,
        *,
        errcode: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.errcode = errcode
        self.status_code = status_code


class RoomResolutionError(RoomServiceError):
    """Raised when a room ID or alias cannot be resolved."""

    def __init__(self, reference: str) -> None:
        super().__init__("Invalid room ID or alias", errcode="M_NOT_FOUND")
        self.reference = reference
