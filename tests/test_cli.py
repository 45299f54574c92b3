"""
tests/test_cli.py -- Tests for the operator commands in main.py.

Each test points the CLI at a throwaway SQLite file so the commands run
end to end (argparse -> store -> database) without touching DATABASE_URL.
"""

from __future__ import annotations

import pytest

import main as cli
from auth.credentials import create_user, verify_credentials
from auth.models import Principal
from auth.sessions import SessionStore
from auth.store import UserStore
from core.database import create_db_engine
from snippets.store import SnippetStore, snippets


@pytest.fixture
def db_url(tmp_path, monkeypatch) -> str:
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setattr(cli, "create_db_engine", lambda _ignored: create_db_engine(url))
    return url


def test_create_super_user(db_url: str, capsys) -> None:
    assert cli.main(["create-user", "ops@example.com", "--super-user", "--password", "opspass1"]) == 0
    assert "Created super user ops@example.com" in capsys.readouterr().out

    engine = create_db_engine(db_url)
    user = verify_credentials(UserStore(engine), "ops@example.com", "opspass1")
    assert user.is_super_user is True
    engine.dispose()


def test_create_user_reports_domain_errors(db_url: str, capsys) -> None:
    assert cli.main(["create-user", "ops@example.com", "--password", "opspass1"]) == 0
    assert cli.main(["create-user", "ops@example.com", "--password", "opspass1"]) == 1
    assert "already exists" in capsys.readouterr().out


def test_create_user_prompts_for_password(db_url: str, monkeypatch) -> None:
    monkeypatch.setattr(cli.getpass, "getpass", lambda prompt="": "prompted1")
    assert cli.main(["create-user", "quiet@example.com"]) == 0

    engine = create_db_engine(db_url)
    assert verify_credentials(UserStore(engine), "quiet@example.com", "prompted1")
    engine.dispose()


def test_assign_orphans(db_url: str, capsys) -> None:
    engine = create_db_engine(db_url)
    user_store = UserStore(engine)
    admin = create_user(user_store, "root@example.com", "rootpass1", is_super_user=True)
    store = SnippetStore(engine)
    store.create_category("Legacy")
    legacy = store.create_snippet("Old rule", "Legacy", ".old{}", owner_id=admin.id)
    with engine.begin() as conn:
        conn.execute(snippets.update().where(snippets.c.id == legacy.id).values(user_id=None))
    engine.dispose()

    assert cli.main(["assign-orphans", "root@example.com"]) == 0
    assert "Assigned 1 snippet(s)" in capsys.readouterr().out

    engine = create_db_engine(db_url)
    assert SnippetStore(engine).get_snippet(legacy.id).user_id == admin.id
    engine.dispose()


def test_assign_orphans_unknown_user(db_url: str) -> None:
    assert cli.main(["assign-orphans", "nobody@example.com"]) == 1


def test_purge_sessions(db_url: str, capsys) -> None:
    engine = create_db_engine(db_url)
    SessionStore(engine, ttl_seconds=-1).create(Principal(user_id=1))
    engine.dispose()

    assert cli.main(["purge-sessions"]) == 0
    assert "Purged 1 expired session(s)" in capsys.readouterr().out


def test_no_command_prints_help(capsys) -> None:
    assert cli.main([]) == 0
    assert "create-user" in capsys.readouterr().out
