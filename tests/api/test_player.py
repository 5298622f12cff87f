# tests/api/test_player.py
"""Tests for player presence endpoints."""

import pytest

from tests.conftest import ALEX, STEVE

ROOM = "!room:example.org"


def _puppet(player) -> str:
    return f"@_mc_{player.uuid}:example.org"


def test_join_puts_puppet_in_room(client, auth_headers, room_service):
    response = client.post("/player/join", headers=auth_headers, json={"player": "Alex"})

    assert response.status_code == 200
    room_service.ensure_puppet.assert_awaited_once_with(ROOM, ALEX)
    room_service.send_text.assert_not_awaited()


def test_quit_leaves_room(client, auth_headers, room_service):
    response = client.post("/player/quit", headers=auth_headers, json={"player": "Steve"})

    assert response.status_code == 200
    room_service.leave_room.assert_awaited_once_with(ROOM, as_user=_puppet(STEVE))


def test_kick_leaves_with_reason(client, auth_headers, room_service):
    response = client.post(
        "/player/kick",
        headers=auth_headers,
        json={"player": "Steve", "reason": "flying is not enabled"},
    )

    assert response.status_code == 200
    room_service.leave_room.assert_awaited_once_with(
        ROOM,
        as_user=_puppet(STEVE),
        reason="Kicked from the server: flying is not enabled",
    )


@pytest.mark.parametrize("path", ["/player/join", "/player/quit", "/player/kick"])
def test_player_is_required(client, auth_headers, path):
    response = client.post(path, headers=auth_headers, json={"reason": "x"})

    assert response.status_code == 400
    assert response.json()["error"] == "NO_PLAYER"


@pytest.mark.parametrize("path", ["/player/join", "/player/quit"])
def test_unknown_player(client, auth_headers, room_service, path):
    response = client.post(path, headers=auth_headers, json={"player": "Nobody"})

    assert response.status_code == 400
    assert response.json()["error"] == "NO_PLAYER_ID"
    room_service.ensure_puppet.assert_not_awaited()


@pytest.mark.parametrize(
    ("payload", "code"),
    [
        ({"player": "Steve"}, "NO_REASON"),
        ({"player": "Steve", "reason": 3}, "REASON_TYPE"),
        ({"player": 3, "reason": "x"}, "PLAYER_TYPE"),
        ({"player": "Nobody", "reason": "x"}, "NO_PLAYER_ID"),
    ],
)
def test_kick_validation(client, auth_headers, room_service, payload, code):
    response = client.post("/player/kick", headers=auth_headers, json=payload)

    assert response.status_code == 400
    assert response.json()["error"] == code
    room_service.leave_room.assert_not_awaited()


def test_requires_token(client):
    response = client.post("/player/join", json={"player": "Steve"})
    assert response.status_code == 401
