"""
tests/test_tokens.py -- Unit tests for auth/tokens.py.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import jwt

from auth.tokens import (
    create_reset_token,
    decode_reset_token,
    generate_password,
    generate_session_token,
    hash_password,
    hash_session_token,
    verify_password,
)
from core.config import get_settings


class TestPasswords:
    def test_hash_and_verify(self) -> None:
        hashed = hash_password("correct horse")
        assert hashed.startswith("$2")
        assert verify_password("correct horse", hashed)
        assert not verify_password("wrong horse", hashed)

    def test_cost_factor_from_settings(self) -> None:
        hashed = hash_password("x")
        assert hashed.split("$")[2] == f"{get_settings().bcrypt_rounds:02d}"

    def test_malformed_hash_is_a_mismatch(self) -> None:
        assert verify_password("anything", "not-a-bcrypt-hash") is False

    def test_generated_password_length(self) -> None:
        assert len(generate_password()) == 12
        assert generate_password() != generate_password()


class TestSessionTokens:
    def test_tokens_are_unique(self) -> None:
        assert generate_session_token() != generate_session_token()

    def test_hash_is_stable_and_not_the_token(self) -> None:
        token = generate_session_token()
        assert hash_session_token(token) == hash_session_token(token)
        assert hash_session_token(token) != token
        assert len(hash_session_token(token)) == 64


class TestResetTokens:
    def test_round_trip(self) -> None:
        token, jti, expires_at = create_reset_token(42)
        payload = decode_reset_token(token)
        assert payload is not None
        assert payload["user_id"] == 42
        assert payload["jti"] == jti
        assert expires_at > datetime.now(timezone.utc)

    def test_garbage_rejected(self) -> None:
        assert decode_reset_token("not.a.jwt") is None
        assert decode_reset_token("") is None

    def test_expired_rejected(self) -> None:
        payload = {
            "sub": "1",
            "user_id": 1,
            "purpose": "password_reset",
            "jti": "abc",
            "exp": datetime.now(timezone.utc) - timedelta(seconds=5),
        }
        token = jwt.encode(payload, get_settings().secret_key, algorithm="HS256")
        assert decode_reset_token(token) is None

    def test_other_purpose_rejected(self) -> None:
        payload = {
            "sub": "1",
            "user_id": 1,
            "purpose": "login",
            "jti": "abc",
            "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
        }
        token = jwt.encode(payload, get_settings().secret_key, algorithm="HS256")
        assert decode_reset_token(token) is None

    def test_wrong_key_rejected(self) -> None:
        payload = {
            "sub": "1",
            "user_id": 1,
            "purpose": "password_reset",
            "jti": "abc",
            "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
        }
        token = jwt.encode(payload, "x" * 40, algorithm="HS256")
        assert decode_reset_token(token) is None
