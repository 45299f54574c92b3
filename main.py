#!/usr/bin/env python3
"""
Snips -- operator commands for the snippet library database.

The HTTP API is served with `uvicorn asgi:app`. These commands work directly
against DATABASE_URL for the jobs that have no endpoint or that must run
before the first super user exists.

Usage:
  python main.py create-user admin@example.com --super-user
  python main.py create-user dev@example.com --password 'changeme1'
  python main.py assign-orphans admin@example.com
  python main.py purge-sessions

Environment variables:
  DATABASE_URL  SQLAlchemy URL (default: sqlite:///snips.db beside this file)
  SECRET_KEY    Required unless DEBUG=true
"""

import argparse
import getpass
import logging
import sys
from typing import Optional

from auth.credentials import create_user
from auth.sessions import SessionStore
from auth.store import UserStore
from core.config import get_settings
from core.database import create_db_engine
from core.errors import SnipsError
from snippets.store import SnippetStore

logger = logging.getLogger("snips.cli")


def _prompt_password() -> str:
    """Read a password twice from the terminal without echoing it."""
    first = getpass.getpass("Password: ")
    second = getpass.getpass("Confirm password: ")
    if first != second:
        print("  [!] Passwords do not match.")
        sys.exit(1)
    return first


def cmd_create_user(engine, email: str, password: Optional[str], super_user: bool) -> int:
    user_store = UserStore(engine)
    user = create_user(user_store, email, password if password is not None else _prompt_password(), super_user)
    logger.info("Created user %s (super_user=%s) from the command line", user.email, user.is_super_user)
    role = "super user" if user.is_super_user else "user"
    print(f"  Created {role} {user.email} (id {user.id})")
    return 0


def cmd_assign_orphans(engine, email: str) -> int:
    """Give every snippet without an author to the account `email`."""
    user_store = UserStore(engine)
    owner = user_store.get_by_email(email.strip())
    if owner is None:
        print(f"  [!] No user with email '{email}'.")
        return 1
    moved = SnippetStore(engine).assign_orphans(owner.id)
    logger.info("Assigned %d orphan snippet(s) to user %d", moved, owner.id)
    print(f"  Assigned {moved} snippet(s) to {owner.email}")
    return 0


def cmd_purge_sessions(engine) -> int:
    settings = get_settings()
    purged = SessionStore(engine, settings.session_expire_seconds).purge_expired()
    print(f"  Purged {purged} expired session(s)")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="snips",
        description="Operator commands for the Snips snippet library.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py create-user admin@example.com --super-user
  python main.py assign-orphans admin@example.com
  python main.py purge-sessions
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p_create = sub.add_parser("create-user", help="Create a user account")
    p_create.add_argument("email", metavar="EMAIL")
    p_create.add_argument(
        "--super-user",
        action="store_true",
        help="Grant super user rights (manage users, delete categories, edit any snippet)",
    )
    p_create.add_argument(
        "--password",
        metavar="PASSWORD",
        default=None,
        help="Password to set. Prompted for (without echo) when omitted.",
    )

    p_orphans = sub.add_parser("assign-orphans", help="Give snippets that have no author to a user")
    p_orphans.add_argument("email", metavar="EMAIL")

    sub.add_parser("purge-sessions", help="Delete expired session rows")

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    logging.basicConfig(level=logging.INFO, format="%(levelname)-5s %(name)s %(message)s")
    engine = create_db_engine(get_settings().database_url)
    try:
        if args.command == "create-user":
            return cmd_create_user(engine, args.email, args.password, args.super_user)
        if args.command == "assign-orphans":
            return cmd_assign_orphans(engine, args.email)
        return cmd_purge_sessions(engine)
    except SnipsError as exc:
        print(f"  [!] {exc.message}")
        return 1
    finally:
        engine.dispose()


if __name__ == "__main__":
    sys.exit(main())
