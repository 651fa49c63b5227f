"""
core/db.py -- SQLAlchemy engine construction shared by every store.

Each store (auth/store.py, org/store.py) owns its own MetaData and tables but
builds its engine here so SQLite connection handling is identical everywhere.

Layer rule: no imports from api/, auth/, or org/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an Engine for db_url.

    SQLite connections are shared across the TestClient / uvicorn thread pool,
    so check_same_thread is disabled. Any other backend is a plain
    create_engine() call: swapping SQLite for PostgreSQL is a URL change.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
