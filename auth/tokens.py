"""
auth/tokens.py -- Password hashing, session tokens, and password-reset JWTs.

Security design decisions:
  Passwords: bcrypt directly (no passlib wrapper). The cost factor comes from
       Settings.bcrypt_rounds, which refuses values below 10. The _DUMMY_HASH
       constant enables timing equalization in verify_credentials() so response
       time does not reveal whether an email exists.

  Session tokens: secrets.token_urlsafe(32) gives 256 bits of entropy. The
       sessions table stores HMAC-SHA256(SECRET_KEY, token) so lookup is O(1)
       and a copy of the database alone cannot be replayed as live cookies.

  Reset tokens: python-jose with HS256. The JWT carries user_id, a jti that is
       recorded in password_reset_tokens for single use, a purpose claim, and
       expiry. Verification returns None on any failure -- the credential layer
       turns that into a ValidationError.

Layer rule: no imports from api/, snippets/, or notify/. Import from core/
is allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from core.config import get_settings

_settings = get_settings()

_ALGORITHM = "HS256"
_RESET_PURPOSE = "password_reset"

SESSION_COOKIE = "session_id"

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt rejects input over 72 bytes with ValueError; auth/credentials.py
    refuses such passwords before they reach this function.
    """
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash -- treat as a mismatch.
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("snips_timing_dummy")


def generate_password(length: int = 12) -> str:
    """Random temporary password for admin resets."""
    return secrets.token_urlsafe(length)[:length]


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------


def generate_session_token() -> str:
    return secrets.token_urlsafe(32)


def hash_session_token(raw_token: str) -> str:
    """Return HMAC-SHA256(SECRET_KEY, raw_token) as a hex string."""
    return hmac.new(
        _settings.secret_key.encode(),
        raw_token.encode(),
        hashlib.sha256,
    ).hexdigest()


def set_session_cookie(response, token: str) -> None:
    """Write the session token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POST -- CSRF mitigation.
    secure: only sent over HTTPS when SECURE_COOKIES=true.
    max_age: matches the session row's expiry so both expire together.
    """
    response.set_cookie(
        SESSION_COOKIE,
        value=token,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
        max_age=_settings.session_expire_seconds,
    )


def clear_session_cookie(response) -> None:
    response.delete_cookie(SESSION_COOKIE)


# ---------------------------------------------------------------------------
# Password reset JWT
# ---------------------------------------------------------------------------


def create_reset_token(user_id: int) -> tuple[str, str, datetime]:
    """Encode a signed reset JWT. Returns (token, jti, expires_at)."""
    jti = secrets.token_hex(16)
    expires_at = datetime.now(timezone.utc) + timedelta(seconds=_settings.reset_token_expire_seconds)
    payload = {
        "sub": str(user_id),
        "user_id": user_id,
        "purpose": _RESET_PURPOSE,
        "jti": jti,
        "exp": expires_at,
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM), jti, expires_at


def decode_reset_token(token: str) -> dict | None:
    """Decode and verify a reset JWT. Returns the payload dict or None on any failure.

    Expired or tampered tokens, and JWTs minted for any other purpose, all
    come back as None.
    """
    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if payload.get("purpose") != _RESET_PURPOSE or "user_id" not in payload or "jti" not in payload:
        return None
    return payload
