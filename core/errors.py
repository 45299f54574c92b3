"""
core/errors.py -- Typed error hierarchy shared by every layer.

Every failure a caller can see is one of these. Each class owns a
machine-stable code and the HTTP status the API layer maps it to, so the
exception handlers in api/main.py stay a single generic function.

  ValidationError      400  malformed/missing/oversized input, unknown category
  AuthenticationError  401  no session, invalid session, wrong password
  AuthorizationError   403  authenticated but not allowed
  NotFoundError        404  resource id absent
  ConflictError        400  uniqueness violation or delete blocked by dependents
  InternalError        500  storage failure; never retried

Layer rule: core/ imports nothing from the rest of the project.
"""

from __future__ import annotations

from typing import Optional


class SnipsError(Exception):
    """Base class. Carries a stable code plus a human-readable message."""

    code: str = "error"
    http_status: int = 500

    def __init__(self, message: str, *, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict:
        payload: dict = {"code": self.code, "message": self.message}
        if self.detail is not None:
            payload["detail"] = self.detail
        return payload


class ValidationError(SnipsError):
    code = "validation_error"
    http_status = 400


class AuthenticationError(SnipsError):
    code = "unauthorized"
    http_status = 401


class AuthorizationError(SnipsError):
    code = "forbidden"
    http_status = 403


class NotFoundError(SnipsError):
    code = "not_found"
    http_status = 404


class ConflictError(SnipsError):
    """Uniqueness violation, or a delete blocked by dependent rows.

    count is set when the conflict is caused by dependents (e.g. the number of
    snippets still filed under a category) so clients can show it without
    parsing the message.
    """

    code = "conflict"
    http_status = 400

    def __init__(self, message: str, *, count: Optional[int] = None, detail: Optional[str] = None) -> None:
        super().__init__(message, detail=detail)
        self.count = count

    def to_dict(self) -> dict:
        payload = super().to_dict()
        if self.count is not None:
            payload["count"] = self.count
        return payload


class InternalError(SnipsError):
    code = "internal_error"
    http_status = 500
