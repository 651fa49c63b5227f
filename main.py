#!/usr/bin/env python3
"""
crewbase -- operator CLI.

Users are not self-registered through the API; operators create them here.

Usage:
  python main.py create-user --name "Ada Lovelace" --email ada@example.com
  python main.py create-user --name Ada --email ada@example.com --password s3cret
  python main.py set-password --email ada@example.com
  python main.py list-tokens --email ada@example.com
  python main.py revoke-tokens --email ada@example.com
  python main.py serve --port 8000 --reload

Environment variables:
  DATABASE_URL  SQLAlchemy URL of the database (default: SQLite file beside the code)
  SECRET_KEY    HMAC key for bearer tokens (required unless DEBUG=true)
"""

import argparse
import getpass
import logging
import sys
from typing import Optional

from sqlalchemy.exc import IntegrityError

from auth.models import User
from auth.store import UserStore
from auth.tokens import hash_password, revoke_all_tokens
from core.config import get_settings

logger = logging.getLogger("crewbase.cli")

_MAX_PASSWORD_LEN = 255


class CLIError(Exception):
    """A user-facing failure: printed to stderr, exit status 1."""


def _read_password(given: Optional[str]) -> str:
    """Return the password from the flag, or prompt twice without echo."""
    if given is not None:
        password = given
    else:
        password = getpass.getpass("Password: ")
        if getpass.getpass("Repeat password: ") != password:
            raise CLIError("Passwords do not match.")
    if not password:
        raise CLIError("Password must not be empty.")
    if len(password) > _MAX_PASSWORD_LEN:
        raise CLIError(f"Password must be at most {_MAX_PASSWORD_LEN} characters.")
    return password


def _require_user(store: UserStore, email: str) -> User:
    user = store.get_by_email(email)
    if user is None:
        raise CLIError(f"No user with email '{email}'.")
    return user


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_create_user(store: UserStore, args: argparse.Namespace) -> None:
    name = args.name.strip()
    email = args.email.strip()
    if not name or not email:
        raise CLIError("Name and email must not be empty.")
    password = _read_password(args.password)
    try:
        user_id = store.create_user(User(name=name, email=email, password=hash_password(password)))
    except IntegrityError as exc:
        raise CLIError(f"A user with email '{email}' already exists.") from exc
    logger.info("Created user id=%d", user_id)
    print(f"  Created user {user_id} <{email}>.")


def cmd_set_password(store: UserStore, args: argparse.Namespace) -> None:
    user = _require_user(store, args.email)
    password = _read_password(args.password)
    store.update_user(user.id, password=hash_password(password))
    print(f"  Password updated for <{user.email}>.")
    if args.revoke:
        revoked = revoke_all_tokens(store, user)
        print(f"  {revoked} token(s) revoked.")


def cmd_list_tokens(store: UserStore, args: argparse.Namespace) -> None:
    user = _require_user(store, args.email)
    tokens = store.list_tokens(user.id)
    if not tokens:
        print(f"  <{user.email}> holds no tokens.")
        return
    print(f"  {'ID':>6}  {'DEVICE':<24} {'CREATED':<34} LAST USED")
    for t in tokens:
        print(f"  {t.id:>6}  {t.name[:24]:<24} {t.created_at or '':<34} {t.last_used_at or 'never'}")


def cmd_revoke_tokens(store: UserStore, args: argparse.Namespace) -> None:
    user = _require_user(store, args.email)
    revoked = revoke_all_tokens(store, user)
    print(f"  {revoked} token(s) revoked for <{user.email}>.")


def cmd_serve(args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crewbase",
        description="Operator commands for the crewbase API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py create-user --name Ada --email ada@example.com
  python main.py revoke-tokens --email ada@example.com
  python main.py serve --reload
        """,
    )
    parser.add_argument(
        "--database-url",
        metavar="URL",
        default=None,
        help="Override DATABASE_URL for this command",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p = sub.add_parser("create-user", help="Create a user who can log in")
    p.add_argument("--name", required=True)
    p.add_argument("--email", required=True)
    p.add_argument("--password", default=None, help="Prompted for when omitted")

    p = sub.add_parser("set-password", help="Replace a user's password")
    p.add_argument("--email", required=True)
    p.add_argument("--password", default=None, help="Prompted for when omitted")
    p.add_argument("--revoke", action="store_true", help="Also revoke every token the user holds")

    p = sub.add_parser("list-tokens", help="List a user's tokens (never the secret)")
    p.add_argument("--email", required=True)

    p = sub.add_parser("revoke-tokens", help="Sign a user out of every device")
    p.add_argument("--email", required=True)

    p = sub.add_parser("serve", help="Run the API with uvicorn")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8000)
    p.add_argument("--reload", action="store_true")

    return parser


_STORE_COMMANDS = {
    "create-user": cmd_create_user,
    "set-password": cmd_set_password,
    "list-tokens": cmd_list_tokens,
    "revoke-tokens": cmd_revoke_tokens,
}


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "serve":
        cmd_serve(args)
        return 0

    store = UserStore(args.database_url or get_settings().database_url)
    try:
        _STORE_COMMANDS[args.command](store, args)
    except CLIError as exc:
        print(f"  [!] {exc}", file=sys.stderr)
        return 1
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
