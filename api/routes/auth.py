"""
api/routes/auth.py -- Login, logout, identity, and password endpoints.

Routes:
  POST /auth/login            -- email/password login; issues the session cookie
  POST /auth/logout           -- destroys the session row and clears the cookie
  GET  /auth/me               -- current principal (requires a session)
  POST /auth/change-password  -- change own password (requires a session)
  POST /auth/forgot-password  -- email a single-use reset link (public)
  POST /auth/reset-password   -- redeem a reset link (public)

Security:
  POST /login and /forgot-password are rate-limited per client IP.
  verify_credentials() provides timing equalization -- use it, never inline.
  /forgot-password answers identically for known and unknown emails.
  Cache-Control: no-store on login responses.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response

from api.dependencies import get_email_service, get_session_store, get_user_store
from api.limiter import limiter
from api.models import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    PrincipalResponse,
    ResetPasswordRequest,
)
from auth.credentials import change_password, complete_password_reset, request_password_reset, verify_credentials
from auth.dependencies import extract_session_token, get_current_principal, require
from auth.models import Principal
from auth.policy import Action
from auth.sessions import SessionStore
from auth.store import UserStore
from auth.tokens import clear_session_cookie, set_session_cookie
from core.config import get_settings
from core.errors import AuthenticationError, ValidationError
from notify.email import EmailService

logger = logging.getLogger("snips.api")

_LOGIN_LIMIT = get_settings().login_rate_limit

# Auth policy:
# - POST /auth/login:            public
# - POST /auth/logout:           public -- destroying a missing session is a no-op
# - GET  /auth/me:               requires a session
# - POST /auth/change-password:  requires a session (CHANGE_OWN_PASSWORD)
# - POST /auth/forgot-password:  public, rate limited
# - POST /auth/reset-password:   public; the signed token is the credential
router = APIRouter()


@router.post("/auth/login", response_model=PrincipalResponse)
@limiter.limit(_LOGIN_LIMIT)
def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    user_store: UserStore = Depends(get_user_store),
    session_store: SessionStore = Depends(get_session_store),
) -> PrincipalResponse:
    """Authenticate with email and password; set the session cookie.

    Returns the same generic error for an unknown email and a wrong password.
    """
    if not body.email or not body.password:
        raise ValidationError("Email and password are required")

    try:
        user = verify_credentials(user_store, body.email, body.password)
    except AuthenticationError:
        logger.warning("Failed login for %s from %s", body.email, request.client.host if request.client else "unknown")
        raise

    principal = Principal(user_id=user.id, is_super_user=user.is_super_user, email=user.email)
    token = session_store.create(principal)
    user_store.update_last_login(user.id)

    set_session_cookie(response, token)
    response.headers["Cache-Control"] = "no-store"
    return PrincipalResponse.from_principal(principal)


@router.post("/auth/logout", response_model=MessageResponse)
def logout(
    request: Request,
    response: Response,
    session_store: SessionStore = Depends(get_session_store),
) -> MessageResponse:
    """Destroy the caller's session and clear the cookie."""
    token = extract_session_token(request)
    if token:
        session_store.destroy(token)
    clear_session_cookie(response)
    return MessageResponse(message="Logged out successfully")


@router.get("/auth/me", response_model=PrincipalResponse)
def me(principal: Principal = Depends(get_current_principal)) -> PrincipalResponse:
    """Return the principal stored in the caller's session."""
    return PrincipalResponse.from_principal(principal)


@router.post("/auth/change-password", response_model=MessageResponse)
def change_own_password(
    body: ChangePasswordRequest,
    principal: Principal = Depends(require(Action.CHANGE_OWN_PASSWORD)),
    user_store: UserStore = Depends(get_user_store),
) -> MessageResponse:
    """Change the caller's password. 401 if currentPassword is wrong."""
    change_password(user_store, principal.user_id, body.current_password or "", body.new_password or "")
    return MessageResponse(message="Password changed successfully")


@router.post("/auth/forgot-password", response_model=MessageResponse)
@limiter.limit(_LOGIN_LIMIT)
def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    user_store: UserStore = Depends(get_user_store),
    email_service: EmailService = Depends(get_email_service),
) -> MessageResponse:
    """Email a reset link if the address is registered. Always answers the same way."""
    if not body.email:
        raise ValidationError("Email is required")
    issued = request_password_reset(user_store, body.email)
    if issued is not None:
        user, token = issued
        email_service.send_password_reset_link(user.email, token)
    return MessageResponse(message="If that email is registered, a reset link has been sent.")


@router.post("/auth/reset-password", response_model=MessageResponse)
def reset_password_with_token(
    body: ResetPasswordRequest,
    user_store: UserStore = Depends(get_user_store),
    session_store: SessionStore = Depends(get_session_store),
) -> MessageResponse:
    """Set a new password from an emailed link. Existing sessions are revoked."""
    user_id = complete_password_reset(user_store, body.token or "", body.new_password or "")
    session_store.destroy_for_user(user_id)
    return MessageResponse(message="Password has been reset. Please log in.")
