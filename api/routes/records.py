"""
api/routes/records.py -- CRUD routes for the flat organisation entities.

Roles and teams expose the same five routes, so one factory builds a router
per entity kind:

  GET    /{plural}           -- paginated, sortable list
  POST   /{plural}           -- create; 201
  GET    /{plural}/{id}      -- detail; 404 when absent
  PUT    /{plural}/{id}      -- rename; 404 when absent
  DELETE /{plural}/{id}      -- delete; 204, 404 when absent

All routes require authentication. Create and update stamp created_by /
updated_by with the acting user's id and name.

List query parameters are validated by FastAPI: an unknown sort_by, a
sort_dir other than asc/desc, page < 1, or per_page outside
[1, MAX_PER_PAGE] is a 422 before the handler runs.
"""

from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.exc import SQLAlchemyError

from api.models import DataEnvelope, Page, RecordCreate, RecordOut, RecordUpdate
from api.pagination import build_page
from auth.dependencies import get_current_user
from auth.models import User
from core.config import get_settings
from core.errors import NotFound, StorageFailure
from org.models import Actor, Record
from org.store import DEFAULT_SORT_BY, DEFAULT_SORT_DIR, OrgStore

logger = logging.getLogger("crewbase.api.records")

SortField = Literal["id", "name", "code", "created_at", "updated_at"]
SortDir = Literal["asc", "desc"]


def _actor(user: User) -> Actor:
    return Actor(id=user.id, name=user.name)


def make_record_router(kind: str, plural: str) -> APIRouter:
    """Build the CRUD router for one entity kind ("role" -> /roles)."""
    settings = get_settings()
    router = APIRouter(prefix=f"/{plural}", dependencies=[Depends(get_current_user)])

    def _get_or_404(store: OrgStore, record_id: int) -> Record:
        record = store.get(kind, record_id)
        if record is None:
            raise NotFound(kind, record_id)
        return record

    @router.get("", response_model=Page, name=f"list_{plural}")
    def list_records(
        request: Request,
        page: int = Query(1, ge=1),
        per_page: int = Query(settings.default_per_page, ge=1, le=settings.max_per_page),
        sort_by: SortField = Query(DEFAULT_SORT_BY),
        sort_dir: SortDir = Query(DEFAULT_SORT_DIR),
    ) -> Page:
        store: OrgStore = request.app.state.org_store
        records, total = store.list_page(kind, page=page, per_page=per_page, sort_by=sort_by, sort_dir=sort_dir)
        return build_page(
            [RecordOut.from_record(r) for r in records],
            total=total,
            page=page,
            per_page=per_page,
            url=request.url,
        )

    @router.post("", response_model=DataEnvelope[RecordOut], status_code=201, name=f"create_{kind}")
    def create_record(
        request: Request,
        body: RecordCreate,
        current_user: User = Depends(get_current_user),
    ) -> DataEnvelope[RecordOut]:
        store: OrgStore = request.app.state.org_store
        try:
            record_id = store.create(kind, Record(name=body.name, code=body.code), actor=_actor(current_user))
        except SQLAlchemyError as exc:
            logger.exception("Failed to create %s", kind)
            raise StorageFailure(f"Failed to create {kind}") from exc
        logger.info("User id=%d created %s id=%d", current_user.id, kind, record_id)
        return DataEnvelope[RecordOut](data=RecordOut.from_record(_get_or_404(store, record_id)))

    @router.get("/{record_id}", response_model=DataEnvelope[RecordOut], name=f"get_{kind}")
    def get_record(request: Request, record_id: int) -> DataEnvelope[RecordOut]:
        store: OrgStore = request.app.state.org_store
        return DataEnvelope[RecordOut](data=RecordOut.from_record(_get_or_404(store, record_id)))

    @router.put("/{record_id}", response_model=DataEnvelope[RecordOut], name=f"update_{kind}")
    def update_record(
        request: Request,
        record_id: int,
        body: RecordUpdate,
        current_user: User = Depends(get_current_user),
    ) -> DataEnvelope[RecordOut]:
        store: OrgStore = request.app.state.org_store
        _get_or_404(store, record_id)
        try:
            updated = store.update(kind, record_id, actor=_actor(current_user), name=body.name)
        except SQLAlchemyError as exc:
            logger.exception("Failed to update %s id=%d", kind, record_id)
            raise StorageFailure(f"Failed to update {kind}") from exc
        if not updated:
            # Deleted between the existence check and the update.
            raise NotFound(kind, record_id)
        return DataEnvelope[RecordOut](data=RecordOut.from_record(_get_or_404(store, record_id)))

    @router.delete("/{record_id}", status_code=204, name=f"delete_{kind}")
    def delete_record(request: Request, record_id: int) -> Response:
        store: OrgStore = request.app.state.org_store
        if not store.delete(kind, record_id):
            raise NotFound(kind, record_id)
        return Response(status_code=204)

    return router


roles_router = make_record_router("role", "roles")
teams_router = make_record_router("team", "teams")
