"""
tests/conftest.py -- Shared test fixtures for Snips unit and integration tests.

This module provides:
  - make_test_engine(): isolated named shared-memory SQLite engine
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api: module-scoped ApiContext (TestClient + stores + a super user and a member)
  - client: the same TestClient with its cookie jar emptied before each test
  - engine / user_store / snippet_store / session_store: per-test unit fixtures

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
for the TestClient because route handlers run in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

The environment must be set before any core/auth import:
  DEBUG=true             -- get_settings() auto-generates SECRET_KEY
  RATE_LIMIT_ENABLED=false -- the shared limiter is built disabled
  BCRYPT_ROUNDS=10       -- the lowest cost Settings accepts, for speed
"""

from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from typing import NamedTuple
from unittest.mock import MagicMock

# CRITICAL: Set these before any core/auth import.
os.environ.setdefault("DEBUG", "true")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("BCRYPT_ROUNDS", "10")
os.environ.pop("BOOTSTRAP_ADMIN_EMAIL", None)
os.environ.pop("BOOTSTRAP_ADMIN_PASSWORD", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from api.main import app
from auth.credentials import create_user
from auth.models import Principal
from auth.sessions import SessionStore
from auth.store import UserStore
from core.database import create_db_engine
from notify.email import EmailService
from snippets.store import SnippetStore

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "adminpass123"
MEMBER_EMAIL = "member@example.com"
MEMBER_PASSWORD = "memberpass123"

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_test_engine(db_suffix: str) -> Engine:
    """Create an engine on an isolated named shared-memory SQLite database.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    return create_db_engine(f"sqlite:///file:snips_{db_suffix}?mode=memory&cache=shared&uri=true")


def fake_email_service() -> MagicMock:
    """EmailService double whose sends all report "not delivered" unless a test says otherwise."""
    email = MagicMock(spec=EmailService)
    email.is_configured = False
    email.send.return_value = False
    email.send_welcome.return_value = False
    email.send_password_reset_notice.return_value = False
    email.send_password_reset_link.return_value = False
    return email


def _patch_lifespan(engine: Engine, stores: dict):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    the isolated test DB rather than DATABASE_URL.

    The purge_task is a long-sleeping coroutine that keeps asyncio happy
    (a real asyncio.Task is required; MagicMock would fail on .cancel()).
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.engine = engine
        app.state.user_store = stores["user_store"]
        app.state.session_store = stores["session_store"]
        app.state.snippet_store = stores["snippet_store"]
        app.state.email = stores["email"]
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


class ApiContext(NamedTuple):
    client: TestClient
    user_store: UserStore
    session_store: SessionStore
    snippet_store: SnippetStore
    email: MagicMock
    admin_id: int
    member_id: int
    admin_headers: dict
    member_headers: dict


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api(request) -> Generator[ApiContext, None, None]:
    """Yield an ApiContext for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers but use an isolated in-memory store.
    A super user and a member are created up front, each with a live
    session passed as an Authorization: Bearer header.
    """
    engine = make_test_engine(request.module.__name__.rsplit(".", 1)[-1])
    user_store = UserStore(engine)
    session_store = SessionStore(engine, ttl_seconds=3600)
    snippet_store = SnippetStore(engine)
    email = fake_email_service()

    admin = create_user(user_store, ADMIN_EMAIL, ADMIN_PASSWORD, is_super_user=True)
    member = create_user(user_store, MEMBER_EMAIL, MEMBER_PASSWORD)
    admin_token = session_store.create(Principal(user_id=admin.id, is_super_user=True, email=admin.email))
    member_token = session_store.create(Principal(user_id=member.id, is_super_user=False, email=member.email))

    stores = {
        "user_store": user_store,
        "session_store": session_store,
        "snippet_store": snippet_store,
        "email": email,
    }
    app.router.lifespan_context = _patch_lifespan(engine, stores)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiContext(
            client=client,
            user_store=user_store,
            session_store=session_store,
            snippet_store=snippet_store,
            email=email,
            admin_id=admin.id,
            member_id=member.id,
            admin_headers={"Authorization": f"Bearer {admin_token}"},
            member_headers={"Authorization": f"Bearer {member_token}"},
        )

    engine.dispose()


@pytest.fixture
def client(api: ApiContext) -> TestClient:
    """The module's TestClient with no cookies left over from an earlier login."""
    api.client.cookies.clear()
    api.email.reset_mock()
    return api.client


# ---------------------------------------------------------------------------
# Unit-test fixtures -- a fresh database per test
# ---------------------------------------------------------------------------


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    eng = make_test_engine(f"unit_{uuid.uuid4().hex}")
    yield eng
    eng.dispose()


@pytest.fixture
def user_store(engine: Engine) -> UserStore:
    return UserStore(engine)


@pytest.fixture
def session_store(engine: Engine) -> SessionStore:
    return SessionStore(engine, ttl_seconds=3600)


@pytest.fixture
def snippet_store(engine: Engine, user_store: UserStore) -> SnippetStore:
    return SnippetStore(engine)
