"""
tests/test_cli.py -- Operator CLI commands in main.py.

Each test gets its own named shared-memory database. A UserStore held open
for the test keeps the database alive between CLI invocations (a shared-memory
SQLite database disappears when its last connection closes).
"""

import itertools

import pytest

import main as cli
from auth.store import UserStore
from auth.tokens import authenticate_user, issue_token, resolve_token
from core.errors import Unauthenticated

_counter = itertools.count()


@pytest.fixture
def db():
    url = f"sqlite:///file:test_cli_{next(_counter)}?mode=memory&cache=shared&uri=true"
    keeper = UserStore(url)
    yield url, keeper
    keeper.close()


def _run(url: str, *args: str) -> int:
    return cli.main(["--database-url", url, *args])


def _create_ada(url: str) -> int:
    return _run(url, "create-user", "--name", "Ada", "--email", "ada@example.com", "--password", "s3cret")


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 0
    assert "create-user" in capsys.readouterr().out


def test_create_user(db, capsys):
    url, store = db
    assert _create_ada(url) == 0
    assert "Created user" in capsys.readouterr().out
    user = authenticate_user(store, "ada@example.com", "s3cret")
    assert user.name == "Ada"


def test_create_user_duplicate_email(db, capsys):
    url, _ = db
    _create_ada(url)
    assert _create_ada(url) == 1
    assert "already exists" in capsys.readouterr().err


def test_create_user_empty_password(db, capsys):
    url, _ = db
    rc = _run(url, "create-user", "--name", "Ada", "--email", "ada@example.com", "--password", "")
    assert rc == 1
    assert "must not be empty" in capsys.readouterr().err


def test_create_user_prompts_for_password(db, monkeypatch):
    url, store = db
    monkeypatch.setattr(cli.getpass, "getpass", lambda prompt="": "prompted")
    assert _run(url, "create-user", "--name", "Ada", "--email", "ada@example.com") == 0
    assert authenticate_user(store, "ada@example.com", "prompted").email == "ada@example.com"


def test_create_user_prompt_mismatch(db, monkeypatch, capsys):
    url, _ = db
    answers = iter(["one", "two"])
    monkeypatch.setattr(cli.getpass, "getpass", lambda prompt="": next(answers))
    assert _run(url, "create-user", "--name", "Ada", "--email", "ada@example.com") == 1
    assert "do not match" in capsys.readouterr().err


def test_set_password_with_revoke(db, capsys):
    url, store = db
    _create_ada(url)
    user = store.get_by_email("ada@example.com")
    token = issue_token(store, user, "web")

    assert _run(url, "set-password", "--email", "ada@example.com", "--password", "n3w", "--revoke") == 0
    out = capsys.readouterr().out
    assert "Password updated" in out
    assert "1 token(s) revoked" in out
    assert authenticate_user(store, "ada@example.com", "n3w").id == user.id
    with pytest.raises(Unauthenticated):
        resolve_token(store, token)


def test_set_password_keeps_tokens_without_revoke(db):
    url, store = db
    _create_ada(url)
    user = store.get_by_email("ada@example.com")
    token = issue_token(store, user, "web")
    assert _run(url, "set-password", "--email", "ada@example.com", "--password", "n3w") == 0
    assert resolve_token(store, token).id == user.id


def test_unknown_email(db, capsys):
    url, _ = db
    assert _run(url, "revoke-tokens", "--email", "nobody@example.com") == 1
    assert "No user with email" in capsys.readouterr().err


def test_list_tokens(db, capsys):
    url, store = db
    _create_ada(url)
    user = store.get_by_email("ada@example.com")

    assert _run(url, "list-tokens", "--email", "ada@example.com") == 0
    assert "holds no tokens" in capsys.readouterr().out

    token = issue_token(store, user, "laptop")
    assert _run(url, "list-tokens", "--email", "ada@example.com") == 0
    out = capsys.readouterr().out
    assert "laptop" in out
    assert "never" in out
    assert token.partition("|")[2] not in out


def test_revoke_tokens(db, capsys):
    url, store = db
    _create_ada(url)
    user = store.get_by_email("ada@example.com")
    issue_token(store, user, "web")
    issue_token(store, user, "mobile")

    assert _run(url, "revoke-tokens", "--email", "ada@example.com") == 0
    assert "2 token(s) revoked" in capsys.readouterr().out
    assert store.count_tokens(user.id) == 0
