"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper (same as snippets/store.py).
UserStore is the repository; _row_to_user / _row_to_reset_token are the
mappers. Route and credential code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

The store raises sqlalchemy.exc.IntegrityError on a duplicate email and
returns None/False for missing rows. Turning those into typed domain errors
is auth/credentials.py's job.

Layer rule: no imports from api/, snippets/, or notify/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, ForeignKey, Integer, String, Table, Text, func, select
from sqlalchemy.engine import Engine

from auth.models import PasswordResetToken, User
from core.database import metadata

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password", Text, nullable=False),  # bcrypt hash
    Column("is_super_user", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Column("last_login", String(32)),
)

password_reset_tokens = Table(
    "password_reset_tokens",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("token", String(64), nullable=False, unique=True),  # JWT jti, not the JWT
    Column("expires_at", String(32), nullable=False),
    Column("used", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User and PasswordResetToken entities.

    Usage:
        engine = create_db_engine("sqlite:///snips.db")
        store = UserStore(engine)
        store.create_user(User(email="admin@example.com", hashed_password=hash_password("secret"), is_super_user=True))
        user = store.get_by_email("admin@example.com")
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        metadata.create_all(self.engine, tables=[users, password_reset_tokens])

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def has_users(self) -> bool:
        """Return True if at least one user record exists. Used by the bootstrap seed."""
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(users)).scalar()
        return (result or 0) > 0

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                users.insert().values(
                    email=user.email,
                    password=user.hashed_password,
                    is_super_user=1 if user.is_super_user else 0,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users ordered by email. Super-user-only operation."""
        with self.engine.connect() as conn:
            rows = conn.execute(users.select().order_by(users.c.email)).fetchall()
        return [_row_to_user(r) for r in rows]

    def update_password(self, user_id: int, hashed_password: str) -> bool:
        """Replace the stored hash. Returns False if user_id was not found."""
        with self.engine.connect() as conn:
            result = conn.execute(users.update().where(users.c.id == user_id).values(password=hashed_password))
            conn.commit()
        return result.rowcount > 0

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a user record. Returns True if deleted, False if not found.

        Callers must enforce the self-delete rule before calling this method.
        Snippets owned by the user are left in place; their author_email reads
        back as None.
        """
        with self.engine.connect() as conn:
            conn.execute(password_reset_tokens.delete().where(password_reset_tokens.c.user_id == user_id))
            result = conn.execute(users.delete().where(users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    def update_last_login(self, user_id: int) -> None:
        """Stamp the current UTC timestamp as last_login for the given user."""
        with self.engine.connect() as conn:
            conn.execute(users.update().where(users.c.id == user_id).values(last_login=_now_iso()))
            conn.commit()

    # ------------------------------------------------------------------
    # Password reset tokens
    # ------------------------------------------------------------------

    def create_reset_token(self, token: PasswordResetToken) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                password_reset_tokens.insert().values(
                    user_id=token.user_id,
                    token=token.token_id,
                    expires_at=token.expires_at,
                    used=0,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_reset_token(self, token_id: str) -> PasswordResetToken | None:
        with self.engine.connect() as conn:
            row = conn.execute(
                password_reset_tokens.select().where(password_reset_tokens.c.token == token_id)
            ).fetchone()
        return _row_to_reset_token(row) if row is not None else None

    def mark_reset_token_used(self, token_id: str) -> bool:
        """Flip used=1 on an unused token. Returns False if it was already used.

        The WHERE used = 0 guard makes redemption a single atomic statement, so
        two concurrent requests with the same link cannot both succeed.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                password_reset_tokens.update()
                .where((password_reset_tokens.c.token == token_id) & (password_reset_tokens.c.used == 0))
                .values(used=1)
            )
            conn.commit()
        return result.rowcount > 0


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        hashed_password=row.password,
        is_super_user=bool(row.is_super_user),
        created_at=row.created_at,
        last_login=row.last_login,
    )


def _row_to_reset_token(row) -> PasswordResetToken:
    return PasswordResetToken(
        id=row.id,
        user_id=row.user_id,
        token_id=row.token,
        expires_at=row.expires_at,
        used=bool(row.used),
        created_at=row.created_at,
    )
