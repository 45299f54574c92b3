"""
API request and response models for the Snips REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py and
snippets/models.py, which own the internal domain representation. Route
handlers map between the two.

Request fields are deliberately permissive (optional, no length limits on
the domain fields): the repository and credential layer own the validation
rules and their error messages, so a missing description and a 251-character
description both come back as the same validation_error envelope. Pydantic
still rejects wrong JSON types.

Wire names follow the browser client: css_code / created_at on
snippets, isSuperUser / currentPassword / newPassword in camelCase.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import Principal, User
from snippets.models import Snippet

# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /auth/login. Passwords are never stripped."""

    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=128)


class ChangePasswordRequest(BaseModel):
    """Request body for POST /auth/change-password."""

    model_config = ConfigDict(populate_by_name=True)

    current_password: Optional[str] = Field(default=None, alias="currentPassword", max_length=128)
    new_password: Optional[str] = Field(default=None, alias="newPassword", max_length=128)


class ForgotPasswordRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: Optional[str] = Field(default=None, max_length=255)


class ResetPasswordRequest(BaseModel):
    """Request body for POST /auth/reset-password (emailed link)."""

    model_config = ConfigDict(populate_by_name=True)

    token: Optional[str] = Field(default=None, max_length=2048)
    new_password: Optional[str] = Field(default=None, alias="newPassword", max_length=128)


class PrincipalResponse(BaseModel):
    """Identity of the logged-in caller. Returned by login and /auth/me."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    email: str
    is_super_user: bool = Field(alias="isSuperUser")

    @classmethod
    def from_principal(cls, principal: Principal) -> "PrincipalResponse":
        return cls(id=principal.user_id, email=principal.email, is_super_user=principal.is_super_user)


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


# ---------------------------------------------------------------------------
# Users (super user only)
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    """Request body for POST /users."""

    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=128)
    is_super_user: bool = Field(default=False, alias="isSuperUser")


class AdminPasswordReset(BaseModel):
    """Request body for POST /users/{id}/reset-password. Omit newPassword to generate one."""

    model_config = ConfigDict(populate_by_name=True)

    new_password: Optional[str] = Field(default=None, alias="newPassword", max_length=128)


class AdminPasswordResetResponse(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    message: str
    email_sent: bool = Field(alias="emailSent")
    # Only present when the server generated the password and email delivery failed.
    temporary_password: Optional[str] = Field(default=None, alias="temporaryPassword")


class UserResponse(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    email: str
    is_super_user: bool = Field(alias="isSuperUser")
    created_at: str
    last_login: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            is_super_user=user.is_super_user,
            created_at=user.created_at or "",
            last_login=user.last_login,
        )


# ---------------------------------------------------------------------------
# Snippets and categories
# ---------------------------------------------------------------------------


class SnippetWrite(BaseModel):
    """Request body for POST /snippets and PUT /snippets/{id}."""

    description: Optional[str] = None
    category: Optional[str] = None
    css_code: Optional[str] = None


class SnippetResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    description: str
    category: str
    css_code: str
    user_id: Optional[int]
    author_email: Optional[str]
    created_at: str

    @classmethod
    def from_snippet(cls, snippet: Snippet) -> "SnippetResponse":
        return cls(
            id=snippet.id,
            description=snippet.description,
            category=snippet.category,
            css_code=snippet.css_code,
            user_id=snippet.user_id,
            author_email=snippet.author_email,
            created_at=snippet.created_at,
        )


class CategoryCreate(BaseModel):
    name: Optional[str] = None


class CategoryResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None
    count: Optional[int] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
