"""
api/routes/auth.py -- Authentication REST endpoints.

Routes:
  POST /auth/login    -- email + password + device_name; issues a bearer token
  POST /auth/logout   -- revokes every token of the current user; 204
  GET  /auth/user     -- current user's public profile (requires auth)

Security:
  POST /login is rate-limited per client IP (LOGIN_RATE_LIMIT).
  authenticate_user() provides timing equalization -- use it, never inline.
  Unknown email and wrong password produce the identical InvalidCredentials.
  Cache-Control: no-store on login responses; the body holds a credential.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import CurrentUserData, DataEnvelope, LoginData, LoginRequest, UserPublic
from auth.dependencies import get_current_user
from auth.models import User
from auth.store import UserStore
from auth.tokens import authenticate_user, issue_token, revoke_all_tokens
from core.config import get_settings

logger = logging.getLogger("crewbase.api.auth")

# Auth policy:
# - POST /auth/login:   public -- login endpoint must be unauthenticated
# - POST /auth/logout:  requires auth (get_current_user)
# - GET  /auth/user:    requires auth (get_current_user)
router = APIRouter(prefix="/auth")


@limiter.limit(get_settings().login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/login", response_model=DataEnvelope[LoginData])
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Verify email and password; return a fresh bearer token and the user.

    The plaintext token appears in this response and nowhere else, ever.
    InvalidCredentials propagates to the exception handler, which renders
    HTTP 400 with error code 401.
    """
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.email, body.password)
    token = issue_token(user_store, user, body.device_name)
    logger.info("User id=%d logged in (device=%r)", user.id, body.device_name)

    resp = JSONResponse(
        status_code=200,
        content=DataEnvelope[LoginData](data=LoginData(token=token, user=UserPublic.from_user(user))).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/logout", status_code=204)
def logout(request: Request, current_user: User = Depends(get_current_user)) -> Response:
    """Sign the current user out everywhere: every token they hold is revoked,
    not only the one presented on this request.
    """
    user_store: UserStore = request.app.state.user_store
    revoked = revoke_all_tokens(user_store, current_user)
    logger.info("User id=%d logged out (%d token(s) revoked)", current_user.id, revoked)
    return Response(status_code=204)


@router.get("/user", response_model=DataEnvelope[CurrentUserData])
def auth_user(current_user: User = Depends(get_current_user)) -> DataEnvelope[CurrentUserData]:
    """Return the public profile of the authenticated user."""
    return DataEnvelope[CurrentUserData](data=CurrentUserData(user=UserPublic.from_user(current_user)))
