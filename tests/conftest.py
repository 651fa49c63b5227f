"""
tests/conftest.py -- Shared test fixtures for crewbase integration tests.

This module provides:
  - make_stores(): creates isolated in-memory DBs for the user and org stores
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus a logged-in user's bearer token
  - user_store / org_store: bare stores for unit tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.

Environment must be set before any app import:
  DEBUG=true          -- get_settings() auto-generates SECRET_KEY
  LOGIN_RATE_LIMIT    -- raised so the suite's many logins are not throttled
  ALLOWED_HOSTS       -- TestClient sends Host: testserver
"""

from __future__ import annotations

import itertools
import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')
os.environ.setdefault("API_PREFIX", "")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import User
from auth.store import UserStore
from auth.tokens import hash_password, issue_token
from org.store import OrgStore

_db_counter = itertools.count()


def make_stores(db_suffix: str) -> tuple[UserStore, OrgStore]:
    """Create stores on one named shared-memory SQLite database.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   and fixtures don't share state.
    """
    url = f"sqlite:///file:test_crewbase_{db_suffix}_{next(_db_counter)}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=url), OrgStore(db_url=url)


def _patch_lifespan(user_store: UserStore, org_store: OrgStore):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.org_store = org_store
        yield

    return test_lifespan


@dataclass
class ApiHarness:
    client: TestClient
    user_store: UserStore
    org_store: OrgStore
    user: User
    password: str
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture(scope="module")
def api_client() -> Generator[ApiHarness, None, None]:
    """Yield an ApiHarness for API integration tests.

    A user (ada@example.com / password) is created before the client starts,
    with one token already issued for the "fixture" device. Tests that revoke
    tokens must issue their own so they don't sign this one out.
    """
    user_store, org_store = make_stores("api")

    password = "password"
    uid = user_store.create_user(User(name="Ada Lovelace", email="ada@example.com", password=hash_password(password)))
    user = user_store.get_by_id(uid)
    token = issue_token(user_store, user, "fixture")

    app.router.lifespan_context = _patch_lifespan(user_store, org_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiHarness(client, user_store, org_store, user, password, token)

    user_store.close()
    org_store.close()


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def org_store() -> Generator[OrgStore, None, None]:
    store = OrgStore("sqlite:///:memory:")
    yield store
    store.close()
