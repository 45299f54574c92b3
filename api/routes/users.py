"""
api/routes/users.py -- User management endpoints (super user only).

Routes:
  GET    /users                       -- list all users
  POST   /users                       -- create a user; best-effort welcome email
  DELETE /users/{user_id}             -- delete a user (never yourself)
  POST   /users/{user_id}/reset-password -- set or generate a new password

The router-level dependency runs the MANAGE_USERS policy rule, so every
route here answers 401 to anonymous callers and 403 to members before the
handler runs.

Outbound email never fails the request: the user is created (or the password
reset) whether or not SES accepts the message.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from api.dependencies import get_email_service, get_session_store, get_user_store
from api.models import AdminPasswordReset, AdminPasswordResetResponse, MessageResponse, UserCreate, UserResponse
from auth.credentials import create_user, delete_user, reset_password
from auth.dependencies import require_super_user
from auth.models import Principal
from auth.sessions import SessionStore
from auth.store import UserStore
from core.errors import NotFoundError
from notify.email import EmailService

router = APIRouter(dependencies=[Depends(require_super_user)])


@router.get("/users", response_model=list[UserResponse])
def list_users(user_store: UserStore = Depends(get_user_store)) -> list[UserResponse]:
    """List all user accounts ordered by email."""
    return [UserResponse.from_user(u) for u in user_store.list_users()]


@router.post("/users", response_model=UserResponse)
def create_user_account(
    body: UserCreate,
    user_store: UserStore = Depends(get_user_store),
    email_service: EmailService = Depends(get_email_service),
) -> UserResponse:
    """Create a user account and send the welcome email (best effort)."""
    created = create_user(user_store, body.email or "", body.password or "", body.is_super_user)
    email_service.send_welcome(created.email, body.password or "")
    return UserResponse.from_user(created)


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user_account(
    user_id: int,
    principal: Principal = Depends(require_super_user),
    user_store: UserStore = Depends(get_user_store),
    session_store: SessionStore = Depends(get_session_store),
) -> MessageResponse:
    """Delete a user. 400 when a super user targets their own id."""
    delete_user(user_store, user_id, principal)
    session_store.destroy_for_user(user_id)
    return MessageResponse(message="User deleted successfully")


@router.post("/users/{user_id}/reset-password", response_model=AdminPasswordResetResponse)
def reset_user_password(
    user_id: int,
    body: Optional[AdminPasswordReset] = None,
    user_store: UserStore = Depends(get_user_store),
    email_service: EmailService = Depends(get_email_service),
) -> AdminPasswordResetResponse:
    """Reset another user's password and email it to them.

    When newPassword is omitted a random one is generated. If that generated
    password could not be emailed it is returned once in the response so the
    administrator can hand it over.
    """
    target = user_store.get_by_id(user_id)
    if target is None:
        raise NotFoundError("User not found")

    requested = body.new_password if body is not None else None
    password = reset_password(user_store, user_id, requested)
    sent = email_service.send_password_reset_notice(target.email, password)
    return AdminPasswordResetResponse(
        message="Password reset successfully",
        email_sent=sent,
        temporary_password=password if requested is None and not sent else None,
    )
