# src/marco_bridge/main.py
"""Main entry point for the Marco bridge."""

from __future__ import annotations

import logging

from fastapi import FastAPI

from marco_bridge.api import (
    appservice_router,
    chat_router,
    player_router,
    vibecheck_router,
)
from marco_bridge.api.errors import ApiError, api_error_handler, unhandled_error_handler
from marco_bridge.core.settings import settings
from marco_bridge.db.session import create_tables
from marco_bridge.services.matrix import close_room_service
from marco_bridge.services.players import close_player_resolver

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Marco",
    description="Bridge between Matrix rooms and Minecraft servers",
    version=settings.app_version,
)

app.add_exception_handler(ApiError, api_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

# Plugin-facing routes
app.include_router(vibecheck_router)
app.include_router(chat_router)
app.include_router(player_router)

# Homeserver-facing routes
app.include_router(appservice_router)


@app.on_event("startup")
async def on_startup() -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    create_tables()
    logger.info("Marco is listening on %s:%d", settings.bind_address, settings.port)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await close_room_service()
    await close_player_resolver()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the bridge."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Bridge between Matrix rooms and Minecraft servers",
        "docs": "/docs",
    }


if __name__ == "__main__":
    from marco_bridge.__main__ import main

    main()
