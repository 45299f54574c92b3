"""
auth/credentials.py -- Credential operations over a UserStore.

Each function takes the store explicitly and raises a typed error from
core/errors.py on failure, so route handlers stay a thin mapping from HTTP
to these calls.

verify_credentials() keeps bcrypt timing constant whether or not the email
exists. Do NOT inline get_by_email() + verify_password() in a route -- that
re-introduces the username enumeration timing leak.

Layer rule: no imports from api/, snippets/, or notify/.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from auth.models import PasswordResetToken, Principal, User
from auth.store import UserStore
from auth.tokens import (
    _DUMMY_HASH,
    create_reset_token,
    decode_reset_token,
    generate_password,
    hash_password,
    verify_password,
)
from core.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError

logger = logging.getLogger("snips.auth")

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_BYTES = 72  # bcrypt input limit
MAX_EMAIL_LENGTH = 255

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _check_new_password(password: str | None) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be {MAX_PASSWORD_BYTES} bytes or less")
    return password


def verify_credentials(store: UserStore, email: str, password: str) -> User:
    """Return the User for a correct email/password pair.

    Always runs bcrypt whether or not the user exists:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Raises AuthenticationError with one generic message for both cases.
    """
    user = store.get_by_email((email or "").strip())
    if user is None:
        verify_password(password, _DUMMY_HASH)
        raise AuthenticationError("Invalid email or password.")
    if not verify_password(password, user.hashed_password):
        raise AuthenticationError("Invalid email or password.")
    return user


def change_password(store: UserStore, user_id: int, current_password: str, new_password: str) -> None:
    """Change a user's own password after re-checking the current one."""
    _check_new_password(new_password)
    user = store.get_by_id(user_id)
    if user is None or not verify_password(current_password or "", user.hashed_password):
        raise AuthenticationError("Current password is incorrect.")
    store.update_password(user_id, hash_password(new_password))
    logger.info("User %d changed their password", user_id)


def create_user(store: UserStore, email: str, password: str, is_super_user: bool = False) -> User:
    """Create a user. The email is trimmed; uniqueness is enforced by the table."""
    email = (email or "").strip()
    if not email:
        raise ValidationError("Email is required")
    if len(email) > MAX_EMAIL_LENGTH or not _EMAIL_RE.match(email):
        raise ValidationError("Email address is not valid")
    _check_new_password(password)

    try:
        user_id = store.create_user(
            User(email=email, hashed_password=hash_password(password), is_super_user=is_super_user)
        )
    except IntegrityError as exc:
        raise ConflictError("A user with that email already exists") from exc

    created = store.get_by_id(user_id)
    logger.info("Created user %d (super_user=%s)", user_id, is_super_user)
    return created


def delete_user(store: UserStore, user_id: int, acting: Principal) -> None:
    """Delete user_id on behalf of acting. A super user cannot delete themselves."""
    if user_id == acting.user_id:
        logger.warning("User %d attempted to delete their own account", acting.user_id)
        raise ValidationError("You cannot delete your own account")
    if not store.delete_user(user_id):
        raise NotFoundError("User not found")
    logger.info("User %d deleted user %d", acting.user_id, user_id)


def reset_password(store: UserStore, user_id: int, new_password: str | None = None) -> str:
    """Set another user's password. Generates one when new_password is None.

    Returns the password that was set so the caller can deliver it.
    """
    password = new_password if new_password is not None else generate_password()
    _check_new_password(password)
    if not store.update_password(user_id, hash_password(password)):
        raise NotFoundError("User not found")
    logger.info("Password reset for user %d", user_id)
    return password


# ---------------------------------------------------------------------------
# Self-service reset by emailed link
# ---------------------------------------------------------------------------


def request_password_reset(store: UserStore, email: str) -> tuple[User, str] | None:
    """Issue a reset token for email. Returns (user, token) or None if unknown.

    Callers must respond identically in both cases so the endpoint cannot be
    used to discover registered emails.
    """
    user = store.get_by_email((email or "").strip())
    if user is None:
        return None
    token, jti, expires_at = create_reset_token(user.id)
    store.create_reset_token(PasswordResetToken(user_id=user.id, token_id=jti, expires_at=expires_at.isoformat()))
    return user, token


def complete_password_reset(store: UserStore, token: str, new_password: str) -> int:
    """Redeem a reset token and return the user id whose password changed.

    Signature, expiry and single use are all checked.
    """
    _check_new_password(new_password)
    payload = decode_reset_token(token or "")
    if payload is None:
        raise ValidationError("Reset link is invalid or has expired")

    record = store.get_reset_token(payload["jti"])
    if record is None or record.user_id != payload["user_id"]:
        raise ValidationError("Reset link is invalid or has expired")
    if datetime.fromisoformat(record.expires_at) <= datetime.now(timezone.utc):
        raise ValidationError("Reset link is invalid or has expired")
    if not store.mark_reset_token_used(record.token_id):
        raise ValidationError("Reset link has already been used")

    if not store.update_password(record.user_id, hash_password(new_password)):
        raise NotFoundError("User not found")
    logger.info("Password reset link redeemed for user %d", record.user_id)
    return record.user_id
