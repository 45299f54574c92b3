"""
api/main.py -- FastAPI application entry point for Snips.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- credentialed CORS for the browser client
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan handles startup (engine, stores, first-run super user, session purge
task) and shutdown (cancel purge task, dispose the engine) symmetrically.

Every error leaves the API in one envelope:
  {"error": {"code": ..., "message": ..., "detail"?: ..., "count"?: ...}}
SnipsError subclasses carry their own HTTP status; handlers below never
re-derive it.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.categories import router as categories_router
from api.routes.snippets import router as snippets_router
from api.routes.users import router as users_router
from auth.credentials import create_user
from auth.sessions import SessionStore
from auth.store import UserStore
from core.config import get_settings
from core.database import create_db_engine
from core.errors import InternalError, SnipsError
from notify.email import EmailService
from snippets.store import SnippetStore

API_VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("snips.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI) -> None:
    """Delete expired session rows once an hour.

    Expired sessions are already rejected on resolve; this only keeps the
    table from growing. CancelledError from task.cancel() during shutdown
    propagates out of asyncio.sleep and unwinds the coroutine.
    """
    while True:
        await asyncio.sleep(60 * 60)
        try:
            app.state.session_store.purge_expired()
        except SQLAlchemyError:
            logger.exception("Session purge failed")


def _bootstrap_super_user(user_store: UserStore) -> None:
    """Create the first super user from BOOTSTRAP_ADMIN_* on an empty database."""
    if user_store.has_users():
        return
    if not (_settings.bootstrap_admin_email and _settings.bootstrap_admin_password):
        logger.warning(
            "No users exist and BOOTSTRAP_ADMIN_EMAIL/BOOTSTRAP_ADMIN_PASSWORD are unset -- "
            "create one with: python main.py create-user EMAIL --super-user"
        )
        return
    create_user(
        user_store,
        _settings.bootstrap_admin_email,
        _settings.bootstrap_admin_password,
        is_super_user=True,
    )
    logger.info("Bootstrap super user created: %s", _settings.bootstrap_admin_email)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Startup order matters:
      1. Engine first -- every store shares it.
      2. UserStore before SessionStore and SnippetStore -- their tables carry
         foreign keys to users.
      3. Bootstrap super user -- needs the users table.
      4. Purge task last -- references app.state.session_store.
    """
    logger.info("Snips API starting up")
    engine = create_db_engine(_settings.database_url)
    app.state.engine = engine
    app.state.user_store = UserStore(engine)
    app.state.session_store = SessionStore(engine, _settings.session_expire_seconds)
    app.state.snippet_store = SnippetStore(engine)
    app.state.email = EmailService(_settings)
    logger.info("Stores initialized (email_enabled=%s)", app.state.email.is_configured)

    _bootstrap_super_user(app.state.user_store)
    app.state.purge_task = asyncio.create_task(_purge_loop(app))

    yield

    app.state.purge_task.cancel()
    engine.dispose()
    logger.info("Snips API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Snips API",
    description="Shared library of CSS snippets with per-author ownership and super-user administration.",
    version=API_VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() wraps the stack built so far, so the last one added sees
# the request first. Added innermost-first: SlowAPI, CORS, TrustedHost.
# ---------------------------------------------------------------------------

app.add_middleware(SlowAPIMiddleware)

# The browser client sends the session cookie cross-origin, so credentials
# must be allowed and origins must be explicit (no "*").
app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, tags=["Auth"])
app.include_router(users_router, tags=["Users"])
app.include_router(snippets_router, tags=["Snippets"])
app.include_router(categories_router, tags=["Categories"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, detail: ErrorDetail) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=detail).model_dump(exclude_none=True),
    )


def _domain_error_response(exc: SnipsError) -> JSONResponse:
    return JSONResponse(status_code=exc.http_status, content={"error": exc.to_dict()})


@app.exception_handler(SnipsError)
async def snips_error_handler(request: Request, exc: SnipsError) -> JSONResponse:
    """Map a domain error to its HTTP status and the error envelope."""
    if exc.http_status >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return _domain_error_response(exc)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with Retry-After when a rate limit is exceeded."""
    logger.warning("Rate limit exceeded on %s from %s", request.url.path, request.client.host if request.client else "unknown")
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(
        429,
        ErrorDetail(code="rate_limited", message="Too many requests.", detail=str(exc)),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and bad path/query types are client errors: 400, not 422."""
    return _error_response(
        400,
        ErrorDetail(code="validation_error", message="Request validation failed.", detail=str(exc.errors())),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Structured envelope for framework-raised HTTP errors (unknown route, wrong method)."""
    return _error_response(exc.status_code, ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail)))


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Storage failures become internal_error; the driver message stays in the log."""
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return _domain_error_response(InternalError("A database error occurred."))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, ErrorDetail(code="internal_error", message="An unexpected error occurred."))


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py so it is always reachable regardless of router
# registration state. No rate limit applied.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
def health(request: Request) -> JSONResponse:
    """Return API liveness, version, and database reachability.

    Answers 503 with status "degraded" when the database cannot be queried.
    """
    try:
        with request.app.state.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        components = {"app": "ok", "database": "ok"}
        status_code = 200
    except SQLAlchemyError:
        logger.exception("Health check: database unreachable")
        components = {"app": "ok", "database": "error"}
        status_code = 503
    body = HealthResponse(
        status="healthy" if status_code == 200 else "degraded",
        version=API_VERSION,
        components=components,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())
