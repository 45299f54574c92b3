"""
auth/policy.py -- The authorization policy: (principal, action, resource) -> decision.

authorize() is a pure function. It reads nothing from the database and has
no side effects, so every rule can be unit tested without an HTTP layer or a
store. enforce() is the raising wrapper used by FastAPI dependencies and by
the snippet repository.

Rules, most specific first:
  UPDATE_SNIPPET / DELETE_SNIPPET  owner or super user
  CREATE_SNIPPET / CREATE_CATEGORY authenticated
  CHANGE_OWN_PASSWORD              authenticated (password check is the credential store's job)
  DELETE_CATEGORY / MANAGE_USERS   super user
  LIST_SNIPPETS / LIST_CATEGORIES  anyone, including anonymous

A missing principal on any gated action is denied with UNAUTHENTICATED, which
enforce() turns into a 401. Every other denial becomes a 403.

Layer rule: no imports from api/, snippets/, or notify/. The snippet is seen
only through the OwnedResource protocol.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from auth.models import Principal
from core.errors import AuthenticationError, AuthorizationError

UNAUTHENTICATED = "unauthenticated"
FORBIDDEN = "forbidden"
SUPER_USER_REQUIRED = "super_user_required"


class Action(str, Enum):
    CREATE_SNIPPET = "create_snippet"
    UPDATE_SNIPPET = "update_snippet"
    DELETE_SNIPPET = "delete_snippet"
    LIST_SNIPPETS = "list_snippets"
    LIST_CATEGORIES = "list_categories"
    CREATE_CATEGORY = "create_category"
    DELETE_CATEGORY = "delete_category"
    MANAGE_USERS = "manage_users"
    CHANGE_OWN_PASSWORD = "change_own_password"


class OwnedResource(Protocol):
    user_id: Optional[int]


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None

    @property
    def status_code(self) -> int:
        if self.allowed:
            return 200
        return 401 if self.reason == UNAUTHENTICATED else 403


ALLOW = Decision(True)

_PUBLIC = {Action.LIST_SNIPPETS, Action.LIST_CATEGORIES}
_OWNED = {Action.UPDATE_SNIPPET, Action.DELETE_SNIPPET}
_AUTHENTICATED = {Action.CREATE_SNIPPET, Action.CREATE_CATEGORY, Action.CHANGE_OWN_PASSWORD}
_SUPER_USER = {Action.DELETE_CATEGORY, Action.MANAGE_USERS}

_MESSAGES = {
    UNAUTHENTICATED: "Authentication required.",
    FORBIDDEN: "You can only modify your own snippets.",
    SUPER_USER_REQUIRED: "Super user access required.",
}


def authorize(
    principal: Optional[Principal],
    action: Action,
    resource: Optional[OwnedResource] = None,
) -> Decision:
    """Decide whether principal may perform action on resource.

    resource is required for UPDATE_SNIPPET and DELETE_SNIPPET and ignored
    otherwise. Passing None for an ownership action is a programming error.
    """
    if action in _PUBLIC:
        return ALLOW
    if principal is None:
        return Decision(False, UNAUTHENTICATED)

    if action in _OWNED:
        if resource is None:
            raise ValueError(f"{action.value} requires the target resource")
        if principal.is_super_user or resource.user_id == principal.user_id:
            return ALLOW
        return Decision(False, FORBIDDEN)

    if action in _AUTHENTICATED:
        return ALLOW

    if action in _SUPER_USER:
        return ALLOW if principal.is_super_user else Decision(False, SUPER_USER_REQUIRED)

    raise ValueError(f"No policy rule for action {action!r}")


def enforce(
    principal: Optional[Principal],
    action: Action,
    resource: Optional[OwnedResource] = None,
) -> None:
    """Raise AuthenticationError / AuthorizationError unless authorize() allows."""
    decision = authorize(principal, action, resource)
    if decision.allowed:
        return
    message = _MESSAGES.get(decision.reason or "", "Access denied.")
    if decision.reason == UNAUTHENTICATED:
        raise AuthenticationError(message)
    raise AuthorizationError(message)
