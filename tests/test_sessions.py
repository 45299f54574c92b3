"""
tests/test_sessions.py -- Unit tests for auth/sessions.py.

The resolver must map a live token to the stored Principal without touching
the users table, reject expired or unknown tokens, and never store the raw
token.
"""

from __future__ import annotations

from sqlalchemy import select

from auth.models import Principal
from auth.sessions import SessionStore, sessions


def _principal(user_id: int = 7, super_user: bool = False) -> Principal:
    return Principal(user_id=user_id, is_super_user=super_user, email=f"user{user_id}@example.com")


class TestResolve:
    def test_round_trip(self, session_store: SessionStore) -> None:
        principal = _principal(super_user=True)
        token = session_store.create(principal)
        assert session_store.resolve(token) == principal

    def test_unknown_and_empty_tokens_are_anonymous(self, session_store: SessionStore) -> None:
        assert session_store.resolve("not-a-real-token") is None
        assert session_store.resolve("") is None
        assert session_store.resolve(None) is None

    def test_raw_token_not_stored(self, session_store: SessionStore) -> None:
        token = session_store.create(_principal())
        with session_store.engine.connect() as conn:
            sids = [r.sid for r in conn.execute(select(sessions.c.sid))]
        assert token not in sids

    def test_expired_session_resolves_to_none(self, engine) -> None:
        store = SessionStore(engine, ttl_seconds=-1)
        token = store.create(_principal())
        assert store.resolve(token) is None

    def test_resolve_has_no_side_effects(self, engine) -> None:
        """Expired rows stay until purge_expired() runs."""
        store = SessionStore(engine, ttl_seconds=-1)
        store.create(_principal())
        store.resolve("whatever")
        assert store.purge_expired() == 1


class TestLifecycle:
    def test_destroy(self, session_store: SessionStore) -> None:
        token = session_store.create(_principal())
        assert session_store.destroy(token) is True
        assert session_store.resolve(token) is None
        assert session_store.destroy(token) is False

    def test_destroy_for_user_only_hits_that_user(self, session_store: SessionStore) -> None:
        a1 = session_store.create(_principal(1))
        a2 = session_store.create(_principal(1))
        b = session_store.create(_principal(2))

        assert session_store.destroy_for_user(1) == 2
        assert session_store.resolve(a1) is None
        assert session_store.resolve(a2) is None
        assert session_store.resolve(b) == _principal(2)

    def test_purge_keeps_live_sessions(self, engine) -> None:
        live = SessionStore(engine, ttl_seconds=3600)
        dead = SessionStore(engine, ttl_seconds=-1)
        keep = live.create(_principal(1))
        dead.create(_principal(2))
        dead.create(_principal(3))

        assert live.purge_expired() == 2
        assert live.resolve(keep) == _principal(1)
