"""
auth/sessions.py -- Server-side session table and the principal resolver.

A session row maps a token hash to a serialized Principal plus an expiry.
resolve() reads the principal straight from that row: it never goes back to
the users table, so a role change takes effect at the user's next login.
Deleting a user revokes their sessions explicitly (destroy_for_user).

resolve() has no side effects. Expired rows resolve to None and stay in the
table until purge_expired() runs from the lifespan background task.

Layer rule: no imports from api/, snippets/, or notify/.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import Column, Integer, String, Table, Text
from sqlalchemy.engine import Engine

from auth.models import Principal
from auth.tokens import generate_session_token, hash_session_token
from core.database import metadata

logger = logging.getLogger("snips.auth")

sessions = Table(
    "sessions",
    metadata,
    Column("sid", String(64), primary_key=True),  # HMAC of the raw token
    Column("sess", Text, nullable=False),  # JSON-serialized Principal
    Column("user_id", Integer, nullable=False, index=True),
    Column("expired", String(32), nullable=False),  # ISO 8601 UTC
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _serialize(principal: Principal) -> str:
    return json.dumps(
        {
            "user_id": principal.user_id,
            "is_super_user": principal.is_super_user,
            "email": principal.email,
        }
    )


def _deserialize(raw: str) -> Principal | None:
    try:
        data = json.loads(raw)
        return Principal(
            user_id=int(data["user_id"]),
            is_super_user=bool(data.get("is_super_user", False)),
            email=data.get("email", ""),
        )
    except (ValueError, KeyError, TypeError):
        logger.warning("Discarding malformed session payload")
        return None


class SessionStore:
    """Repository for login sessions.

    Usage:
        sessions = SessionStore(engine, ttl_seconds=3600)
        token = sessions.create(Principal(user_id=1, is_super_user=True))
        principal = sessions.resolve(token)
        sessions.destroy(token)
    """

    def __init__(self, engine: Engine, ttl_seconds: int) -> None:
        self.engine = engine
        self.ttl_seconds = ttl_seconds
        metadata.create_all(self.engine, tables=[sessions])

    def create(self, principal: Principal) -> str:
        """Persist a new session for principal and return the raw token.

        The raw token is returned once; only its hash is stored.
        """
        token = generate_session_token()
        expires = _now() + timedelta(seconds=self.ttl_seconds)
        with self.engine.connect() as conn:
            conn.execute(
                sessions.insert().values(
                    sid=hash_session_token(token),
                    sess=_serialize(principal),
                    user_id=principal.user_id,
                    expired=expires.isoformat(),
                )
            )
            conn.commit()
        return token

    def resolve(self, token: str | None) -> Principal | None:
        """Map a raw session token to its Principal, or None for anonymous."""
        if not token:
            return None
        with self.engine.connect() as conn:
            row = conn.execute(sessions.select().where(sessions.c.sid == hash_session_token(token))).fetchone()
        if row is None:
            return None
        if datetime.fromisoformat(row.expired) <= _now():
            return None
        return _deserialize(row.sess)

    def destroy(self, token: str) -> bool:
        """Delete the session for token. Returns False if no such session."""
        with self.engine.connect() as conn:
            result = conn.execute(sessions.delete().where(sessions.c.sid == hash_session_token(token)))
            conn.commit()
        return result.rowcount > 0

    def destroy_for_user(self, user_id: int) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(sessions.delete().where(sessions.c.user_id == user_id))
            conn.commit()
        return result.rowcount

    def purge_expired(self) -> int:
        """Delete every expired session row and return how many were removed.

        ISO 8601 strings with a fixed UTC offset sort chronologically, so a
        string comparison is enough.
        """
        with self.engine.connect() as conn:
            result = conn.execute(sessions.delete().where(sessions.c.expired <= _now().isoformat()))
            conn.commit()
        if result.rowcount:
            logger.info("Purged %d expired session(s)", result.rowcount)
        return result.rowcount
