"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in org/models.py -- dataclasses own domain shape; stores and routes do the work.

Layer rule: no imports from api/ or org/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """An identity that can log in with email and password.

    Users are created out-of-band (see `main.py create-user`). The auth core
    only reads them. `password` holds the bcrypt hash and must never leave
    the process -- API responses are built from the public fields only.
    """

    name: str
    email: str
    password: str  # bcrypt hash
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class AccessToken:
    """One issued bearer credential, bound to a user and a device label.

    Security design:
    - token_hash is HMAC-SHA256(SECRET_KEY, secret). The plaintext
      "<id>|<secret>" is returned ONCE at issue time and is unrecoverable
      afterwards.
    - name is the caller-supplied device label ("web", "mobile", ...). It is
      not unique: a user may hold several tokens with the same label.
    """

    user_id: int
    name: str
    token_hash: str
    id: int | None = None
    created_at: str | None = None
    last_used_at: str | None = None
