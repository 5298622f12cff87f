# tests/conftest.py
from __future__ import annotations

import os
import tempfile
from collections.abc import Generator, Iterator
from typing import Any
from unittest.mock import AsyncMock

# Settings are read at import time, so point them at throwaway locations first.
_CONFIG_ROOT = tempfile.mkdtemp(prefix="marco-test-")
os.environ["CONFIG_ROOT"] = _CONFIG_ROOT
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["HOMESERVER_NAME"] = "example.org"
os.environ["HOMESERVER_URL"] = "http://homeserver.test"
os.environ["SIGNING_SECRET"] = "test-signing-secret"

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from marco_bridge.api.dependencies import get_credential_codec, get_registration  # noqa: E402
from marco_bridge.core.errors import PlayerNotFoundError, RoomResolutionError  # noqa: E402
from marco_bridge.core.registration import Registration  # noqa: E402
from marco_bridge.core.settings import Settings, settings  # noqa: E402
from marco_bridge.db.session import Base, get_db  # noqa: E402
from marco_bridge.main import app as fastapi_app  # noqa: E402
from marco_bridge.services.bridge_manager import BridgeManager  # noqa: E402
from marco_bridge.services.bridge_store import BridgeStore  # noqa: E402
from marco_bridge.services.credentials import CredentialCodec  # noqa: E402
from marco_bridge.services.dispatcher import TransactionLog, get_transaction_log  # noqa: E402
from marco_bridge.services.matrix import MatrixRoomService, get_room_service  # noqa: E402
from marco_bridge.services.outbound_queue import OutboundQueue, get_outbound_queue  # noqa: E402
from marco_bridge.services.players import Player, PlayerResolver, get_player_resolver  # noqa: E402
from marco_bridge.services.translator import EventTranslator  # noqa: E402

TEST_DB_URL = "sqlite://"
BOT_ID = "@_mc_bot:example.org"
STEVE = Player(name="Steve", uuid="8667ba71b85a4004af54457a9734eed7")
ALEX = Player(name="Alex", uuid="ec561538f3fd461daff5086b22154bce")
DISPLAY_NAMES = {"@alice:example.org": "Alice", "@bob:example.org": "Bob"}


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Provide the Settings instance the application runs with."""
    return settings


@pytest.fixture()
def registration() -> Registration:
    return Registration(
        id="marco-test",
        as_token="as-secret",
        hs_token="hs-secret",
        sender_localpart="_mc_bot",
        url="http://localhost:3051",
        user_regexes=("@_mc_.*",),
    )


@pytest.fixture()
def codec() -> CredentialCodec:
    return CredentialCodec("test-signing-secret")


@pytest.fixture()
def store(db_session: Session) -> BridgeStore:
    return BridgeStore(db_session)


@pytest.fixture()
def bridges(store: BridgeStore, codec: CredentialCodec) -> BridgeManager:
    return BridgeManager(store, codec)


@pytest.fixture()
def queue() -> OutboundQueue:
    return OutboundQueue(max_events=50)


@pytest.fixture()
def room_service(registration: Registration) -> AsyncMock:
    """Homeserver stand-in; the pure ID helpers run the real implementation."""
    real = MatrixRoomService(registration, config=settings)
    service = AsyncMock(spec=MatrixRoomService)
    service.user_id = BOT_ID
    service.puppet_user_id.side_effect = real.puppet_user_id
    service.player_uuid_for.side_effect = real.player_uuid_for
    service.is_bridge_user.side_effect = real.is_bridge_user

    async def resolve_room(reference: str) -> str:
        if reference.startswith("!") and ":" in reference:
            return reference
        if reference == "#lobby:example.org":
            return "!lobby:example.org"
        raise RoomResolutionError(reference)

    async def display_name(room_id: str, user_id: str) -> str | None:
        return DISPLAY_NAMES.get(user_id)

    async def ensure_puppet(room_id: str, player: Player) -> str:
        return real.puppet_user_id(player.uuid)

    service.resolve_room.side_effect = resolve_room
    service.get_display_name.side_effect = display_name
    service.ensure_puppet.side_effect = ensure_puppet
    service.get_joined_rooms.return_value = []
    service.get_power_levels.return_value = {"state_default": 50, "users": {}}
    service.send_notice.return_value = "$notice"
    service.send_text.return_value = "$text"
    service.join_room.return_value = None
    service.leave_room.return_value = None
    return service


@pytest.fixture()
def players() -> AsyncMock:
    """Player resolver that knows Steve and Alex."""
    known = {STEVE.name.lower(): STEVE, STEVE.uuid: STEVE, ALEX.name.lower(): ALEX, ALEX.uuid: ALEX}
    resolver = AsyncMock(spec=PlayerResolver)

    async def get_player(identifier: str) -> Player:
        player = known.get(identifier.replace("-", "").lower())
        if player is None:
            raise PlayerNotFoundError(identifier)
        return player

    resolver.get_player.side_effect = get_player
    return resolver


@pytest.fixture()
def translator(room_service: AsyncMock, queue: OutboundQueue, players: AsyncMock) -> EventTranslator:
    return EventTranslator(room_service, queue, players)


@pytest.fixture()
def transaction_log() -> TransactionLog:
    return TransactionLog(capacity=10)


@pytest.fixture()
def app(
    db_session: Session,
    codec: CredentialCodec,
    registration: Registration,
    room_service: AsyncMock,
    players: AsyncMock,
    queue: OutboundQueue,
    transaction_log: TransactionLog,
) -> Iterator[FastAPI]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    overrides: dict[Any, Any] = {
        get_db: _get_session_override,
        get_credential_codec: lambda: codec,
        get_registration: lambda: registration,
        get_room_service: lambda: room_service,
        get_player_resolver: lambda: players,
        get_outbound_queue: lambda: queue,
        get_transaction_log: lambda: transaction_log,
    }
    fastapi_app.dependency_overrides.update(overrides)
    try:
        yield fastapi_app
    finally:
        for key in overrides:
            fastapi_app.dependency_overrides.pop(key, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def bridged_room(bridges: BridgeManager):
    """A bridge for !room:example.org."""
    return bridges.bridge("!room:example.org")


@pytest.fixture()
def auth_headers(bridged_room) -> dict[str, str]:
    return {"Authorization": f"Bearer {bridged_room.id}"}
