"""
api/dependencies.py -- FastAPI Depends() accessors for the stores built in lifespan.

Handlers receive their repositories through these functions instead of
importing module-level singletons. The lifespan owns construction; tests can
swap any of them with app.dependency_overrides.
"""

from __future__ import annotations

from fastapi import Request

from auth.sessions import SessionStore
from auth.store import UserStore
from notify.email import EmailService
from snippets.store import SnippetStore


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_snippet_store(request: Request) -> SnippetStore:
    return request.app.state.snippet_store


def get_email_service(request: Request) -> EmailService:
    return request.app.state.email
