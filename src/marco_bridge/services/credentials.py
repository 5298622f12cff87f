"""Bridge token issuing and verification.

A bridge token is an HS256 JWT carrying the room it unlocks and a random
nonce, so two bridges of the same room never share a token.
"""

from __future__ import annotations

import uuid

from jose import JWTError, jwt

from marco_bridge.core.errors import InvalidCredentialError
from marco_bridge.core.settings import settings


class CredentialCodec:
    """Stateless signer/verifier for bridge tokens."""

    def __init__(self, secret: str, algorithm: str | None = None) -> None:
        if not secret:
            raise ValueError("A signing secret is required")
        self._secret = secret
        self._algorithm = algorithm or settings.jwt_algorithm

    def issue(self, room_id: str) -> str:
        """Return a new signed token bound to ``room_id``."""
        claims = {"room": room_id, "id": uuid.uuid4().hex}
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> str:
        """Return the room embedded in ``token``.

        Raises:
            InvalidCredentialError: If the signature does not validate or the
                token is malformed.
        """
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as err:
            raise InvalidCredentialError(str(err)) from err

        room = claims.get("room")
        if not isinstance(room, str) or not room:
            raise InvalidCredentialError("Token does not name a room")
        if not isinstance(claims.get("id"), str):
            raise InvalidCredentialError("Token is missing its nonce")
        return room
