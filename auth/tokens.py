"""
auth/tokens.py -- Password hashing, credential verification, and bearer tokens.

Security design decisions:
  Passwords: bcrypt directly (no passlib wrapper). Bcrypt's cost factor makes
       brute-force of low-entropy secrets expensive. The _DUMMY_HASH constant
       enables timing equalization in authenticate_user() so response time
       does not reveal whether an email exists.

  Bearer tokens: opaque, "<id>|<secret>" where secret is secrets.token_hex(20)
       (160 bits). We store HMAC-SHA256(SECRET_KEY, secret) only. The id part
       locates the record without scanning; the secret part is compared with
       hmac.compare_digest. When the record does not exist the comparison still
       runs against _DUMMY_TOKEN_HASH, so "no such record" and "hash mismatch"
       cost the same. A bare secret (no "<id>|" prefix) is also accepted and
       looked up by its hash.

  Every failure inside resolve_token() surfaces as Unauthenticated. Callers
       never learn which check failed.

Layer rule: no imports from api/ or org/. Import from core/ is allowed.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt

from auth.models import AccessToken
from core.config import get_settings
from core.errors import InvalidCredentials, Unauthenticated

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("crewbase.auth")

_TOKEN_SECRET_BYTES = 20  # 40 hex chars
_TOKEN_SEPARATOR = "|"
_MAX_TOKEN_ID = 2**63 - 1  # largest id a SQL BIGINT column can hold

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes. LoginRequest caps passwords at
    255 characters; the CLI enforces the same cap on create.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed stored hash is a non-match, not a crash.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("crewbase_timing_dummy")


def authenticate_user(store: UserStore, email: str, password: str) -> User:
    """Return the user whose email and password match, or raise InvalidCredentials.

    Always runs bcrypt whether or not the user exists:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)
    Both raise the same InvalidCredentials with the same message.
    """
    user = store.get_by_email(email)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        raise InvalidCredentials()
    if not verify_password(password, user.password):
        raise InvalidCredentials()
    return user


# ---------------------------------------------------------------------------
# Bearer tokens
# ---------------------------------------------------------------------------


def hash_token_secret(secret: str) -> str:
    """Return HMAC-SHA256(SECRET_KEY, secret) as a hex string.

    Keyed with SECRET_KEY so a leaked database alone is not enough to forge a
    match. Deterministic, which is what makes the by-hash lookup possible.
    """
    return hmac.new(
        get_settings().secret_key.encode(),
        secret.encode(),
        hashlib.sha256,
    ).hexdigest()


_DUMMY_TOKEN_HASH: str = hashlib.sha256(b"crewbase_token_dummy").hexdigest()


def issue_token(store: UserStore, user: User, device_name: str) -> str:
    """Create a token for user labelled device_name; return its plaintext ONCE.

    Device labels are not unique -- each call creates a new record.
    """
    secret = secrets.token_hex(_TOKEN_SECRET_BYTES)
    token_id = store.create_token(AccessToken(user_id=user.id, name=device_name, token_hash=hash_token_secret(secret)))
    logger.info("Issued token id=%d for user id=%d (device=%r)", token_id, user.id, device_name)
    return f"{token_id}{_TOKEN_SEPARATOR}{secret}"


def _find_token(store: UserStore, presented: str) -> AccessToken | None:
    """Locate and verify the record for a presented token. None on any mismatch."""
    if _TOKEN_SEPARATOR in presented:
        id_part, secret = presented.split(_TOKEN_SEPARATOR, 1)
        if not (id_part.isascii() and id_part.isdigit()) or not secret:
            return None
        if len(id_part) > len(str(_MAX_TOKEN_ID)) or int(id_part) > _MAX_TOKEN_ID:
            return None
        record = store.get_token(int(id_part))
        candidate = hash_token_secret(secret)
        expected = record.token_hash if record is not None else _DUMMY_TOKEN_HASH
        if not hmac.compare_digest(candidate, expected) or record is None:
            return None
        return record

    record = store.get_token_by_hash(hash_token_secret(presented))
    if record is None:
        return None
    return record


def _is_expired(token: AccessToken) -> bool:
    minutes = get_settings().token_expire_minutes
    if minutes <= 0 or not token.created_at:
        return False
    created = datetime.fromisoformat(token.created_at)
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc) >= created + timedelta(minutes=minutes)


def resolve_token(store: UserStore, presented: str | None) -> User:
    """Return the user owning the presented token, or raise Unauthenticated.

    Stamps last_used_at on the token after a successful match.
    """
    if not presented:
        raise Unauthenticated()
    token = _find_token(store, presented.strip())
    if token is None or _is_expired(token):
        raise Unauthenticated()
    user = store.get_by_id(token.user_id)
    if user is None:
        raise Unauthenticated()
    store.touch_token(token.id)
    return user


def revoke_all_tokens(store: UserStore, user: User) -> int:
    """Delete every token the user holds. Returns the number revoked."""
    revoked = store.delete_tokens_for_user(user.id)
    logger.info("Revoked %d token(s) for user id=%d", revoked, user.id)
    return revoked
