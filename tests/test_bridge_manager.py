# tests/test_bridge_manager.py
"""Tests for the bridge lifecycle."""

import pytest

from marco_bridge.core.errors import AlreadyBridgedError, NotBridgedError
from marco_bridge.services.credentials import CredentialCodec

ROOM = "!room:example.org"


class TestBridge:
    def test_bridge_marks_room_bridged(self, bridges):
        bridge = bridges.bridge(ROOM)

        assert bridge.room_id == ROOM
        assert bridges.is_room_bridged(ROOM)
        assert bridges.is_bridged(bridge.id)

    def test_second_bridge_is_refused(self, bridges):
        first = bridges.bridge(ROOM)

        with pytest.raises(AlreadyBridgedError):
            bridges.bridge(ROOM)
        assert bridges.get_room_bridge(ROOM).id == first.id

    def test_lost_race_reports_already_bridged(self, bridges, store, mocker):
        # Another request inserts the room between the check and the insert.
        mocker.patch.object(store, "has_room", side_effect=[False, True])
        mocker.patch.object(store, "put", return_value=False)

        with pytest.raises(AlreadyBridgedError):
            bridges.bridge(ROOM)


class TestGetBridge:
    def test_round_trip(self, bridges):
        bridge = bridges.bridge(ROOM)
        assert bridges.get_bridge(bridge.id) == bridge

    def test_forged_token_is_not_bridged(self, bridges):
        bridges.bridge(ROOM)
        forged = CredentialCodec("attacker").issue(ROOM)

        with pytest.raises(NotBridgedError):
            bridges.get_bridge(forged)

    def test_valid_but_unknown_token_is_not_bridged(self, bridges, codec):
        with pytest.raises(NotBridgedError):
            bridges.get_bridge(codec.issue(ROOM))

    def test_token_of_other_room_is_not_bridged(self, bridges, store, codec):
        # A validly signed token stored against a different room.
        token = codec.issue("!other:example.org")
        store.put(token, ROOM)

        with pytest.raises(NotBridgedError):
            bridges.get_bridge(token)


class TestUnbridge:
    def test_unbridge_revokes_token(self, bridges):
        bridge = bridges.bridge(ROOM)

        assert bridges.unbridge(ROOM) is True
        assert not bridges.is_room_bridged(ROOM)
        with pytest.raises(NotBridgedError):
            bridges.get_bridge(bridge.id)

    def test_unbridge_unknown_room(self, bridges):
        assert bridges.unbridge(ROOM) is False

    def test_rebridge_issues_fresh_token(self, bridges):
        old = bridges.bridge(ROOM)
        bridges.unbridge(ROOM)

        new = bridges.bridge(ROOM)
        assert new.id != old.id
        assert bridges.get_bridge(new.id).room_id == ROOM
        with pytest.raises(NotBridgedError):
            bridges.get_bridge(old.id)
