"""
org/store.py -- SQLAlchemy-backed persistence layer for roles and teams.

Uses SQLAlchemy Core (not ORM) so the dataclasses in org/models.py remain the
authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change, not a rewrite.

Pattern: Repository + Data Mapper. OrgStore is the repository; both entity
kinds share one interface keyed by kind ("role" or "team") because their
tables are identical. _row_to_record is the mapper.

Security: all queries use bound parameters. sort_by is checked against
SORTABLE_FIELDS before it is turned into a column reference, so a caller can
never order by an arbitrary expression.

Usage:
    store = OrgStore()
    role_id = store.create("role", Role(name="Admin", code="admin"), actor=Actor(1, "ada"))
    records, total = store.list_page("role", page=1, per_page=10)
    store.close()
"""

from __future__ import annotations

import json
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine

from core.config import get_settings
from core.db import make_engine, now_iso
from org.models import Actor, Record, Role, Team

SORTABLE_FIELDS: tuple[str, ...] = ("id", "name", "code", "created_at", "updated_at")
SORT_DIRECTIONS: tuple[str, ...] = ("asc", "desc")
DEFAULT_SORT_BY = "created_at"
DEFAULT_SORT_DIR = "desc"
MAX_RECORD_ID = 2**63 - 1  # largest id a SQL BIGINT column can hold

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()


def _record_table(name: str) -> Table:
    return Table(
        name,
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("name", String(255), nullable=False),
        Column("code", String(255), nullable=False),
        Column("created_by", Text),  # JSON {"id": .., "name": ..}
        Column("updated_by", Text),  # JSON {"id": .., "name": ..}
        Column("created_at", String(32), nullable=False),
        Column("updated_at", String(32), nullable=False),
    )


_TABLES: dict[str, Table] = {
    "role": _record_table("roles"),
    "team": _record_table("teams"),
}

_TYPES: dict[str, type[Record]] = {
    "role": Role,
    "team": Team,
}

KINDS: tuple[str, ...] = tuple(_TABLES)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _actor_json(actor: Optional[Actor]) -> Optional[str]:
    if actor is None:
        return None
    return json.dumps({"id": actor.id, "name": actor.name})


def _actor_from_json(raw: Optional[str]) -> Optional[Actor]:
    if not raw:
        return None
    data = json.loads(raw)
    return Actor(id=data["id"], name=data["name"])


def _id_in_range(record_id: int) -> bool:
    return 0 < record_id <= MAX_RECORD_ID


def _table(kind: str) -> Table:
    try:
        return _TABLES[kind]
    except KeyError:
        raise ValueError(f"Unknown record kind: {kind!r}") from None


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OrgStore:
    def __init__(self, db_url: str | None = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        metadata.create_all(self.engine)

    def list_page(
        self,
        kind: str,
        page: int = 1,
        per_page: int = 10,
        sort_by: str = DEFAULT_SORT_BY,
        sort_dir: str = DEFAULT_SORT_DIR,
    ) -> tuple[list[Record], int]:
        """Return one page of records plus the total record count.

        page is 1-based. A page past the end returns an empty list with the
        real total, so callers can still render pagination metadata.
        Ties on sort_by are broken by id in the same direction, which keeps
        page boundaries stable when many rows share a timestamp.
        """
        if sort_by not in SORTABLE_FIELDS:
            raise ValueError(f"sort_by must be one of {SORTABLE_FIELDS}, got {sort_by!r}")
        if sort_dir not in SORT_DIRECTIONS:
            raise ValueError(f"sort_dir must be one of {SORT_DIRECTIONS}, got {sort_dir!r}")
        if page < 1 or per_page < 1:
            raise ValueError("page and per_page must be positive")

        table = _table(kind)
        column = table.c[sort_by]
        tiebreak = table.c.id
        if sort_dir == "desc":
            order = [column.desc(), tiebreak.desc()]
        else:
            order = [column.asc(), tiebreak.asc()]

        with self.engine.connect() as conn:
            total = conn.execute(select(func.count()).select_from(table)).scalar() or 0
            rows = conn.execute(
                table.select().order_by(*order).limit(per_page).offset((page - 1) * per_page)
            ).fetchall()
        return [_row_to_record(kind, r) for r in rows], total

    def get(self, kind: str, record_id: int) -> Optional[Record]:
        table = _table(kind)
        if not _id_in_range(record_id):
            return None
        with self.engine.connect() as conn:
            row = conn.execute(table.select().where(table.c.id == record_id)).fetchone()
        return _row_to_record(kind, row) if row is not None else None

    def create(self, kind: str, record: Record, actor: Actor) -> int:
        """Insert a record stamped with actor as both creator and updater. Returns its ID."""
        table = _table(kind)
        now = now_iso()
        stamp = _actor_json(actor)
        with self.engine.connect() as conn:
            result = conn.execute(
                table.insert().values(
                    name=record.name,
                    code=record.code,
                    created_by=stamp,
                    updated_by=stamp,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def update(self, kind: str, record_id: int, actor: Actor, **fields) -> bool:
        """Update name and/or code, stamping actor as the updater.

        Returns True if a row was updated, False if record_id was not found.
        """
        unknown = set(fields) - {"name", "code"}
        if unknown:
            raise ValueError(f"Unknown {kind} fields: {unknown!r}")
        table = _table(kind)
        if not _id_in_range(record_id):
            return False
        with self.engine.connect() as conn:
            result = conn.execute(
                table.update()
                .where(table.c.id == record_id)
                .values(**fields, updated_by=_actor_json(actor), updated_at=now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def delete(self, kind: str, record_id: int) -> bool:
        """Permanently delete a record. Returns True if deleted, False if not found."""
        table = _table(kind)
        if not _id_in_range(record_id):
            return False
        with self.engine.connect() as conn:
            result = conn.execute(table.delete().where(table.c.id == record_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_record(kind: str, row) -> Record:
    return _TYPES[kind](
        id=row.id,
        name=row.name,
        code=row.code,
        created_by=_actor_from_json(row.created_by),
        updated_by=_actor_from_json(row.updated_by),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
