"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in snippets/models.py -- dataclasses own domain shape; stores, the policy and
routes do the work.

Layer rule: no imports from api/, snippets/, or notify/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A person who can log in to Snips.

    email is the login name and is unique (case-sensitive, as stored).
    hashed_password is a bcrypt hash; the plaintext is never persisted.
    is_super_user grants user management, category deletion, and edit/delete
    rights over every snippet.
    """

    email: str
    hashed_password: str
    is_super_user: bool = False
    id: int | None = None
    created_at: str | None = None
    last_login: str | None = None


@dataclass(frozen=True)
class Principal:
    """The identity behind one request, read from the session row.

    Anonymous requests have no Principal at all (None), never an "empty" one.
    email is carried for display (GET /auth/me) and is not used for any
    authorization decision.
    """

    user_id: int
    is_super_user: bool = False
    email: str = ""


@dataclass
class PasswordResetToken:
    """Audit row for a self-service password reset link.

    token_id is the JWT's jti claim, not the token itself. used flips to True
    on first redemption so a link cannot be replayed within its lifetime.
    """

    user_id: int
    token_id: str
    expires_at: str
    used: bool = False
    id: int | None = None
    created_at: str | None = None
