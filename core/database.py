"""
core/database.py -- Engine factory and shared schema metadata.

Every store registers its tables on the one `metadata` object below so the
snippet repository can LEFT JOIN the users table for author emails. Stores
receive an Engine built here rather than a URL: the lifespan builds one engine
and hands it to all of them.

SQLAlchemy Core (not ORM): the dataclasses in auth/models.py and
snippets/models.py stay the domain representation; swapping SQLite for
PostgreSQL is a connection string change.
"""

from __future__ import annotations

from sqlalchemy import MetaData, create_engine, event
from sqlalchemy.engine import Engine

metadata = MetaData()


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    WAL (Write-Ahead Logging) allows readers to proceed without blocking
    during writes. Set per-connection because SQLite PRAGMAs are not
    inherited by new connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def create_db_engine(db_url: str) -> Engine:
    """Build an Engine for db_url, with the SQLite tweaks the stores rely on."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        # FastAPI runs sync handlers in a threadpool, so one connection may be
        # used from several threads over its lifetime.
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine
