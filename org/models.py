"""
org/models.py -- Domain dataclasses for the organisation entities (roles, teams).

These are pure data containers with zero logic. Persistence, sorting and
pagination live in org/store.py.

Roles and teams share one shape: a name, a short code, and an audit trail of
who created and last updated them. The audit trail is a structured Actor, not
free text, captured at the time of the action -- renaming a user later does
not rewrite history.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Actor:
    """The identity that performed a create or update, frozen at that moment."""

    id: int
    name: str


@dataclass
class Record:
    """A flat named entity with an audit trail.

    id is None before the record is written to the database. created_at and
    updated_at are ISO 8601 strings set by the store.
    """

    name: str
    code: str
    id: Optional[int] = None
    created_by: Optional[Actor] = None
    updated_by: Optional[Actor] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class Role(Record):
    pass


@dataclass
class Team(Record):
    pass
