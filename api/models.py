"""
API request and response models for crewbase REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
org/models.py, which own the internal domain representation. Route handlers
map between the two.

Every successful body is wrapped as {"data": ...}; every error as
{"error": {"code", "message"}} (see core/errors.py).
"""

from __future__ import annotations

from typing import Annotated, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from auth.models import User
from org.models import Actor, Record

T = TypeVar("T")

_TrimmedStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


class DataEnvelope(BaseModel, Generic[T]):
    """Success envelope: {"data": <payload>}."""

    data: T


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /auth/login.

    device_name labels the issued token ("web", "mobile", "ci") so a user can
    tell their sessions apart. It is free text and need not be unique.

    The password is taken verbatim: surrounding whitespace is part of it.
    """

    email: _TrimmedStr
    password: str = Field(min_length=1, max_length=255)
    device_name: _TrimmedStr


class UserPublic(BaseModel):
    """Public profile of a user. The password hash is never part of it."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserPublic":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class LoginData(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str
    user: UserPublic


class CurrentUserData(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: UserPublic


# ---------------------------------------------------------------------------
# Roles and teams
# ---------------------------------------------------------------------------


class RecordCreate(BaseModel):
    """Request body for POST /roles and POST /teams."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    code: str = Field(min_length=1, max_length=255)


class RecordUpdate(BaseModel):
    """Request body for PUT /roles/{id} and PUT /teams/{id}.

    Only the name is mutable; the code is fixed at creation.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)


class ActorOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str

    @classmethod
    def from_actor(cls, actor: Optional[Actor]) -> Optional["ActorOut"]:
        if actor is None:
            return None
        return cls(id=actor.id, name=actor.name)


class RecordOut(BaseModel):
    """A role or team as returned by the API."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    code: str
    created_by: Optional[ActorOut]
    updated_by: Optional[ActorOut]
    created_at: str
    updated_at: str

    @classmethod
    def from_record(cls, record: Record) -> "RecordOut":
        return cls(
            id=record.id,
            name=record.name,
            code=record.code,
            created_by=ActorOut.from_actor(record.created_by),
            updated_by=ActorOut.from_actor(record.updated_by),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


class PageLink(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: Optional[str]
    label: str
    active: bool


class Page(BaseModel):
    """Paginated list envelope.

    from/to are 1-based positions of the first and last item on this page
    within the whole result set, or null when the page is empty.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    current_page: int
    data: list[RecordOut]
    first_page_url: str
    from_: Optional[int] = Field(alias="from")
    last_page: int
    last_page_url: str
    links: list[PageLink]
    next_page_url: Optional[str]
    path: str
    per_page: int
    prev_page_url: Optional[str]
    to: Optional[int]
    total: int
