# src/marco_bridge/api/endpoints/__init__.py
"""API endpoint modules."""

from .appservice import router as appservice_router
from .chat import router as chat_router
from .player import router as player_router
from .vibecheck import router as vibecheck_router

__all__ = [
    "appservice_router",
    "chat_router",
    "player_router",
    "vibecheck_router",
]
