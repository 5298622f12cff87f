# tests/test_players.py
"""Tests for Mojang player resolution."""

import httpx
import pytest

from marco_bridge.core.errors import MarcoError, PlayerLookupTimeoutError, PlayerNotFoundError
from marco_bridge.services.players import Player, PlayerResolver, looks_like_uuid, normalize_uuid

API = "https://api.mojang.test"
SESSION = "https://session.mojang.test"
STEVE_UUID = "8667ba71b85a4004af54457a9734eed7"
DASHED = "8667ba71-b85a-4004-af54-457a9734eed7"


def _resolver(handler) -> PlayerResolver:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PlayerResolver(client, api_url=API, session_url=SESSION, timeout_seconds=1.0)


def _mojang(calls: list[str]):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        if request.url.path == "/users/profiles/minecraft/Steve":
            return httpx.Response(200, json={"id": STEVE_UUID, "name": "Steve"})
        if request.url.path == f"/session/minecraft/profile/{STEVE_UUID}":
            return httpx.Response(200, json={"id": STEVE_UUID, "name": "Steve", "properties": []})
        return httpx.Response(204)

    return handler


class TestPlayer:
    def test_needs_name_or_uuid(self):
        with pytest.raises(ValueError):
            Player()

    def test_equality_by_uuid_when_known(self):
        assert Player(name="Steve", uuid=STEVE_UUID) == Player(uuid=STEVE_UUID)
        assert Player(name="Steve") == Player(name="steve")
        assert len({Player(name="Steve", uuid=STEVE_UUID), Player(uuid=STEVE_UUID)}) == 1

    def test_identifier_helpers(self):
        assert looks_like_uuid(DASHED)
        assert not looks_like_uuid("Steve")
        assert normalize_uuid(DASHED.upper()) == STEVE_UUID


@pytest.mark.asyncio
async def test_name_lookup_fills_uuid_and_caches():
    calls: list[str] = []
    resolver = _resolver(_mojang(calls))

    player = await resolver.get_player("Steve")
    again = await resolver.get_player("steve")

    assert player.name == "Steve" and player.uuid == STEVE_UUID
    assert again is player
    assert calls == ["/users/profiles/minecraft/Steve"]
    await resolver.close()


@pytest.mark.asyncio
async def test_uuid_lookup_uses_session_server():
    calls: list[str] = []
    resolver = _resolver(_mojang(calls))

    player = await resolver.get_player(DASHED)

    assert player.name == "Steve" and player.uuid == STEVE_UUID
    assert calls == [f"/session/minecraft/profile/{STEVE_UUID}"]
    # Name lookups now hit the cache
    assert await resolver.get_player("Steve") is player
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_unknown_player_raises_not_found():
    resolver = _resolver(_mojang([]))
    with pytest.raises(PlayerNotFoundError):
        await resolver.get_player("Nobody")


@pytest.mark.asyncio
async def test_blank_identifier_raises_not_found():
    resolver = _resolver(_mojang([]))
    with pytest.raises(PlayerNotFoundError):
        await resolver.get_player("   ")


@pytest.mark.asyncio
async def test_timeout_is_distinct_from_not_found():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    resolver = _resolver(handler)
    with pytest.raises(PlayerLookupTimeoutError):
        await resolver.get_player("Steve")


@pytest.mark.asyncio
async def test_server_error_is_not_a_missing_player():
    resolver = _resolver(lambda request: httpx.Response(502))
    with pytest.raises(MarcoError) as exc_info:
        await resolver.get_player("Steve")
    assert not isinstance(exc_info.value, PlayerNotFoundError)


@pytest.mark.asyncio
async def test_resolved_player_skips_network():
    resolver = _resolver(lambda request: pytest.fail("no request expected"))
    player = Player(name="Steve", uuid=STEVE_UUID)

    assert await resolver.resolve(player) is player
    assert resolver.cached("Steve") is player


@pytest.mark.asyncio
async def test_name_is_escaped_in_lookup_path():
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.raw_path.decode())
        return httpx.Response(204)

    resolver = _resolver(handler)
    with pytest.raises(PlayerNotFoundError):
        await resolver.get_player("a/b?c")

    assert paths == ["/users/profiles/minecraft/a%2Fb%3Fc"]
