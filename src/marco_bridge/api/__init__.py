"""Plugin-facing and homeserver-facing HTTP API."""

from .endpoints import appservice_router, chat_router, player_router, vibecheck_router

__all__ = [
    "appservice_router",
    "chat_router",
    "player_router",
    "vibecheck_router",
]
