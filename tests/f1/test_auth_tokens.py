"""Tests for password hashing and access tokens (F1)."""

from datetime import timedelta

import pytest

from pharmastudy.core.auth import (
    TokenError,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


class TestPasswords:
    def test_hash_is_not_plaintext(self):
        hashed = hash_password("correct horse")
        assert hashed != "correct horse"
        assert verify_password("correct horse", hashed)

    def test_wrong_password_rejected(self):
        hashed = hash_password("correct horse")
        assert not verify_password("battery staple", hashed)


class TestTokens:
    def test_round_trip_returns_user_id(self):
        token = create_access_token("user-123")
        assert decode_access_token(token) == "user-123"

    def test_expired_token_rejected(self):
        token = create_access_token("user-123", expires_delta=timedelta(seconds=-1))
        with pytest.raises(TokenError):
            decode_access_token(token)

    def test_token_signed_with_other_key_rejected(self):
        token = create_access_token("user-123", secret_key="another-key")
        with pytest.raises(TokenError):
            decode_access_token(token)

    def test_garbage_rejected(self):
        with pytest.raises(TokenError):
            decode_access_token("not-a-jwt")
