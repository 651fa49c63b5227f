"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The only accepted credential is an `Authorization: Bearer <token>` header
carrying a token issued by POST /auth/login.

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() wraps it and raises Unauthenticated, which api/main.py
renders as HTTP 401. On success the user is also attached to
request.state.user so middleware and handlers further down the chain can read
it without resolving the token twice.

Layer rule: no imports from api/ or org/.
"""

from __future__ import annotations

from fastapi import Request

from auth.models import User
from auth.store import UserStore
from auth.tokens import resolve_token
from core.errors import Unauthenticated


def bearer_token(request: Request) -> str | None:
    """Extract the bearer token from the Authorization header, if any.

    The scheme name is matched case-insensitively.
    """
    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


def try_get_current_user(request: Request) -> User | None:
    """Resolve the request's bearer token to a User. Never raises."""
    cached = getattr(request.state, "user", None)
    if cached is not None:
        return cached
    user_store: UserStore = request.app.state.user_store
    try:
        user = resolve_token(user_store, bearer_token(request))
    except Unauthenticated:
        return None
    request.state.user = user
    return user


def get_current_user(request: Request) -> User:
    """Require authentication. Raises Unauthenticated if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise Unauthenticated()
    return user
