"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The session token is looked for in priority order:
  1. "session_id" cookie -- set by POST /auth/login.
  2. Authorization: Bearer <token> header -- scripts and API clients.

Both converge on the same SessionStore.resolve() call.

try_get_principal() is the soft variant (returns None for anonymous).
require(action) builds a dependency that runs the authorization policy for
an action that needs no target resource, raising 401/403 through the domain
error handlers. Ownership checks (UPDATE_SNIPPET / DELETE_SNIPPET) need the
snippet row, so those are enforced by the repository instead.

Layer rule: no imports from snippets/ or notify/.
  auth/dependencies.py may import from fastapi (for Depends/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from typing import Callable, Optional

from fastapi import Request

from auth.models import Principal
from auth.policy import Action, enforce
from auth.sessions import SessionStore
from auth.tokens import SESSION_COOKIE
from core.errors import AuthenticationError


def extract_session_token(request: Request) -> Optional[str]:
    token: Optional[str] = request.cookies.get(SESSION_COOKIE)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
    return token or None


def try_get_principal(request: Request) -> Optional[Principal]:
    """Resolve the request's session to a Principal. Never raises."""
    session_store: SessionStore = request.app.state.session_store
    return session_store.resolve(extract_session_token(request))


def require(action: Action) -> Callable[[Request], Optional[Principal]]:
    """Return a dependency that enforces action and yields the principal.

    Use as a FastAPI dependency:
        @router.post("/categories")
        def route(principal: Principal = Depends(require(Action.CREATE_CATEGORY))): ...

    Public actions yield None for anonymous callers.
    """

    def dependency(request: Request) -> Optional[Principal]:
        principal = try_get_principal(request)
        enforce(principal, action)
        return principal

    dependency.__name__ = f"require_{action.value}"
    return dependency


def get_current_principal(request: Request) -> Principal:
    """Require a logged-in user. Raises AuthenticationError (401) for anonymous requests."""
    principal = try_get_principal(request)
    if principal is None:
        raise AuthenticationError("Authentication required.")
    return principal


require_super_user = require(Action.MANAGE_USERS)
