"""
snippets/store.py -- SQLAlchemy-backed repository for snippets and categories.

Pattern: Repository + Data Mapper. SnippetStore is the repository; the
_row_to_* functions are the mappers. Route handlers never touch SQL directly.

Write rules enforced here:
  - A snippet's category must name an existing category at write time. The
    existence check and the write share one transaction (engine.begin()), so
    a category deleted between the two cannot slip through.
  - A category with snippets filed under it cannot be deleted. Count and
    delete share one transaction for the same reason.
  - Only the owner or a super user may update or delete a snippet. The row is
    fetched first (404 before 403) and checked with auth.policy.enforce().
  - Updates never change id, user_id or created_at.

There is no optimistic versioning: two concurrent updates to the same snippet
both succeed and the later statement wins.

Security: all queries use bound parameters. No f-strings in SQL apart from
the hardcoded column names in the migration helper.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, ForeignKey, Integer, String, Table, Text, func, select, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from auth.models import Principal
from auth.policy import Action, enforce
from auth.store import users
from core.database import metadata
from core.errors import ConflictError, NotFoundError, ValidationError
from snippets.models import Snippet

logger = logging.getLogger("snips.snippets")

MAX_CATEGORY_LENGTH = 50
MAX_DESCRIPTION_LENGTH = 250

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

categories = Table(
    "categories",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(MAX_CATEGORY_LENGTH), nullable=False, unique=True),
    Column("created_at", String(32), nullable=False),
)

snippets = Table(
    "snippets",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("description", String(MAX_DESCRIPTION_LENGTH), nullable=False),
    Column("category", String(MAX_CATEGORY_LENGTH), ForeignKey("categories.name"), nullable=False),
    Column("css_code", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="SET NULL")),  # NULL when unowned
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _validate_snippet_fields(description: Optional[str], category: Optional[str], code: Optional[str]) -> None:
    if _is_blank(description) or _is_blank(category) or _is_blank(code):
        raise ValidationError("All fields are required")
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(f"Description must be {MAX_DESCRIPTION_LENGTH} characters or less")


def _require_category(conn: Connection, name: str) -> None:
    row = conn.execute(select(categories.c.id).where(categories.c.name == name)).fetchone()
    if row is None:
        raise ValidationError("Invalid category")


def _snippet_query():
    """SELECT snippets LEFT JOIN users, exposing the owner's email as author_email."""
    return select(snippets, users.c.email.label("author_email")).select_from(
        snippets.outerjoin(users, snippets.c.user_id == users.c.id)
    )


def _fetch_snippet(conn: Connection, snippet_id: int) -> Optional[Snippet]:
    row = conn.execute(_snippet_query().where(snippets.c.id == snippet_id)).fetchone()
    return _row_to_snippet(row) if row is not None else None


# ---------------------------------------------------------------------------
# Migration
# ---------------------------------------------------------------------------


def _migrate_snippets_table(conn: Connection) -> None:
    """Add user_id to a snippets table created before user accounts existed.

    metadata.create_all() only creates missing tables -- it does not add
    columns to existing ones. SQLite has no ADD COLUMN IF NOT EXISTS, so
    PRAGMA table_info is checked first. Other dialects are expected to be
    managed by their own migrations.
    """
    if conn.dialect.name != "sqlite":
        return
    existing = {row[1] for row in conn.execute(text("PRAGMA table_info(snippets)"))}
    if "user_id" not in existing:
        conn.execute(text("ALTER TABLE snippets ADD COLUMN user_id INTEGER REFERENCES users(id) ON DELETE SET NULL"))  # nosemgrep
        logger.info("Added user_id column to snippets table")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SnippetStore:
    """Repository for Snippet and Category entities.

    Usage:
        store = SnippetStore(engine)
        store.create_category("Buttons")
        snippet = store.create_snippet("Primary button", "Buttons", ".btn { ... }", owner_id=1)
        store.list_snippets(search="btn")
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        metadata.create_all(self.engine, tables=[users, categories, snippets])
        with self.engine.begin() as conn:
            _migrate_snippets_table(conn)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def create_category(self, name: Optional[str]) -> str:
        """Insert a category and return the stored (trimmed) name."""
        if _is_blank(name):
            raise ValidationError("Category name is required")
        trimmed = name.strip()
        if len(trimmed) > MAX_CATEGORY_LENGTH:
            raise ValidationError(f"Category name must be {MAX_CATEGORY_LENGTH} characters or less")
        try:
            with self.engine.begin() as conn:
                conn.execute(categories.insert().values(name=trimmed, created_at=_now_iso()))
        except IntegrityError as exc:
            raise ConflictError("Category already exists") from exc
        return trimmed

    def delete_category(self, name: Optional[str]) -> None:
        """Delete an unused category.

        Raises ConflictError carrying the snippet count when any snippet is
        still filed under name, NotFoundError when no such category exists.
        """
        if _is_blank(name):
            raise ValidationError("Category name is required")
        with self.engine.begin() as conn:
            count = conn.execute(
                select(func.count()).select_from(snippets).where(snippets.c.category == name)
            ).scalar() or 0
            if count > 0:
                logger.info("Refused to delete category %r: %d snippet(s) reference it", name, count)
                raise ConflictError(
                    f'Cannot delete category "{name}" because it contains {count} snippet(s). '
                    "Please move or delete those snippets first.",
                    count=count,
                )
            result = conn.execute(categories.delete().where(categories.c.name == name))
            if result.rowcount == 0:
                raise NotFoundError("Category not found")

    def list_categories(self) -> list[str]:
        """Return all category names in alphabetical order."""
        with self.engine.connect() as conn:
            rows = conn.execute(select(categories.c.name).order_by(categories.c.name)).fetchall()
        return [r.name for r in rows]

    # ------------------------------------------------------------------
    # Snippets
    # ------------------------------------------------------------------

    def create_snippet(
        self,
        description: Optional[str],
        category: Optional[str],
        code: Optional[str],
        owner_id: int,
    ) -> Snippet:
        """Insert a snippet owned by owner_id and return it with author_email."""
        _validate_snippet_fields(description, category, code)
        with self.engine.begin() as conn:
            _require_category(conn, category)
            result = conn.execute(
                snippets.insert().values(
                    description=description,
                    category=category,
                    css_code=code,
                    user_id=owner_id,
                    created_at=_now_iso(),
                )
            )
            created = _fetch_snippet(conn, result.inserted_primary_key[0])
        return created

    def get_snippet(self, snippet_id: int) -> Optional[Snippet]:
        with self.engine.connect() as conn:
            return _fetch_snippet(conn, snippet_id)

    def update_snippet(
        self,
        snippet_id: int,
        description: Optional[str],
        category: Optional[str],
        code: Optional[str],
        principal: Optional[Principal],
    ) -> Snippet:
        """Replace description, category and code of an existing snippet.

        Order: existence (404), ownership (401/403), field validation (400).
        """
        with self.engine.begin() as conn:
            existing = _fetch_snippet(conn, snippet_id)
            if existing is None:
                raise NotFoundError("Snippet not found")
            enforce(principal, Action.UPDATE_SNIPPET, existing)
            _validate_snippet_fields(description, category, code)
            _require_category(conn, category)
            conn.execute(
                snippets.update()
                .where(snippets.c.id == snippet_id)
                .values(description=description, category=category, css_code=code)
            )
            updated = _fetch_snippet(conn, snippet_id)
        return updated

    def delete_snippet(self, snippet_id: int, principal: Optional[Principal]) -> None:
        """Permanently delete a snippet. The row must exist before ownership can be checked."""
        with self.engine.begin() as conn:
            existing = _fetch_snippet(conn, snippet_id)
            if existing is None:
                raise NotFoundError("Snippet not found")
            enforce(principal, Action.DELETE_SNIPPET, existing)
            result = conn.execute(snippets.delete().where(snippets.c.id == snippet_id))
            if result.rowcount == 0:
                raise NotFoundError("Snippet not found")

    def list_snippets(self, search: Optional[str] = None, category: Optional[str] = None) -> list[Snippet]:
        """Return snippets newest first, optionally filtered.

        search  -- case-insensitive substring over description OR code
        category -- exact category name
        Both filters combine with AND. Empty strings are ignored.
        """
        query = _snippet_query()
        if search:
            term = search.lower()
            query = query.where(
                func.lower(snippets.c.description).contains(term, autoescape=True)
                | func.lower(snippets.c.css_code).contains(term, autoescape=True)
            )
        if category:
            query = query.where(snippets.c.category == category)
        query = query.order_by(snippets.c.created_at.desc(), snippets.c.id.desc())
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_snippet(r) for r in rows]

    def assign_orphans(self, owner_id: int) -> int:
        """Give every snippet without an owner to owner_id. Returns the number reassigned."""
        with self.engine.begin() as conn:
            result = conn.execute(snippets.update().where(snippets.c.user_id.is_(None)).values(user_id=owner_id))
        return result.rowcount


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_snippet(row) -> Snippet:
    return Snippet(
        id=row.id,
        description=row.description,
        category=row.category,
        css_code=row.css_code,
        user_id=row.user_id,
        created_at=row.created_at,
        author_email=row.author_email,
    )
