# tests/test_credentials.py
"""Tests for bridge token issuing and verification."""

import pytest
from jose import jwt

from marco_bridge.core.errors import InvalidCredentialError
from marco_bridge.services.credentials import CredentialCodec


class TestCredentialCodec:
    """Round trips and forgery."""

    def test_issue_then_verify_returns_room(self, codec):
        token = codec.issue("!room:example.org")
        assert codec.verify(token) == "!room:example.org"

    def test_tokens_for_same_room_differ(self, codec):
        assert codec.issue("!room:example.org") != codec.issue("!room:example.org")

    def test_claims_carry_room_and_nonce(self, codec):
        token = codec.issue("!room:example.org")
        claims = jwt.get_unverified_claims(token)
        assert claims["room"] == "!room:example.org"
        assert isinstance(claims["id"], str) and claims["id"]

    def test_foreign_secret_is_rejected(self, codec):
        forged = CredentialCodec("someone-else").issue("!room:example.org")
        with pytest.raises(InvalidCredentialError):
            codec.verify(forged)

    def test_garbage_is_rejected(self, codec):
        with pytest.raises(InvalidCredentialError):
            codec.verify("not-a-token")

    def test_token_without_room_is_rejected(self, codec):
        token = jwt.encode({"id": "abc"}, "test-signing-secret", algorithm="HS256")
        with pytest.raises(InvalidCredentialError):
            codec.verify(token)

    def test_token_without_nonce_is_rejected(self, codec):
        token = jwt.encode({"room": "!room:example.org"}, "test-signing-secret", algorithm="HS256")
        with pytest.raises(InvalidCredentialError):
            codec.verify(token)

    def test_empty_secret_is_refused(self):
        with pytest.raises(ValueError):
            CredentialCodec("")
