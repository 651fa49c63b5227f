"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper (same as org/store.py).
UserStore is the repository; _row_to_user / _row_to_token are the mappers.
Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Only the HMAC of a token secret is stored (see auth/tokens.py). token_hash
  carries a UNIQUE index so a bare-secret lookup is O(1).

Every mutating method is a single statement committed immediately; there is
no multi-statement transaction anywhere in the auth core.

Layer rule: no imports from api/ or org/.
"""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table, func, select
from sqlalchemy.engine import Engine

from auth.models import AccessToken, User
from core.config import get_settings
from core.db import make_engine, now_iso

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password", String(255), nullable=False),  # bcrypt hash
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_tokens = Table(
    "personal_access_tokens",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("name", String(255), nullable=False),  # device label
    Column("token_hash", String(64), nullable=False, unique=True),  # HMAC-SHA256 hex
    Column("created_at", String(32), nullable=False),
    Column("last_used_at", String(32)),
)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User and AccessToken entities.

    Usage:
        store = UserStore()
        store.create_user(User(name="Ada", email="ada@example.com", password=hash_password("secret")))
        user = store.get_by_email("ada@example.com")
        store.close()
    """

    # Columns update_user() accepts. Anything else is a programming error.
    _MUTABLE_USER_FIELDS: frozenset = frozenset({"name", "email", "password"})

    def __init__(self, db_url: str | None = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        now = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    name=user.name,
                    email=user.email,
                    password=user.password,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def update_user(self, user_id: int, **fields) -> bool:
        """Update name, email, or password (already hashed) on an existing user.

        Returns True if a row was updated, False if user_id was not found.
        Unknown field names raise ValueError rather than being ignored.
        """
        unknown = set(fields) - self._MUTABLE_USER_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        if not fields:
            return False
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(**fields, updated_at=now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Token queries
    # ------------------------------------------------------------------

    def create_token(self, token: AccessToken) -> int:
        """Insert a new token record and return its ID."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _tokens.insert().values(
                    user_id=token.user_id,
                    name=token.name,
                    token_hash=token.token_hash,
                    created_at=now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_token(self, token_id: int) -> AccessToken | None:
        with self.engine.connect() as conn:
            row = conn.execute(_tokens.select().where(_tokens.c.id == token_id)).fetchone()
        return _row_to_token(row) if row is not None else None

    def get_token_by_hash(self, token_hash: str) -> AccessToken | None:
        """Look up a token by its HMAC hash. O(1) via UNIQUE index."""
        with self.engine.connect() as conn:
            row = conn.execute(_tokens.select().where(_tokens.c.token_hash == token_hash)).fetchone()
        return _row_to_token(row) if row is not None else None

    def list_tokens(self, user_id: int) -> list[AccessToken]:
        """Return every token the user holds (newest first)."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _tokens.select()
                .where(_tokens.c.user_id == user_id)
                .order_by(_tokens.c.created_at.desc(), _tokens.c.id.desc())
            ).fetchall()
        return [_row_to_token(r) for r in rows]

    def count_tokens(self, user_id: int) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count()).select_from(_tokens).where(_tokens.c.user_id == user_id)
            ).scalar()
        return result or 0

    def touch_token(self, token_id: int) -> None:
        """Stamp last_used_at on a token after each successful resolution."""
        with self.engine.connect() as conn:
            conn.execute(_tokens.update().where(_tokens.c.id == token_id).values(last_used_at=now_iso()))
            conn.commit()

    def delete_tokens_for_user(self, user_id: int) -> int:
        """Delete every token belonging to user_id. Returns the number deleted."""
        with self.engine.connect() as conn:
            result = conn.execute(_tokens.delete().where(_tokens.c.user_id == user_id))
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        password=row.password,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_token(row) -> AccessToken:
    return AccessToken(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        token_hash=row.token_hash,
        created_at=row.created_at,
        last_used_at=row.last_used_at,
    )
