"""
core/errors.py -- Application error taxonomy.

Every failure a client can observe is one of these classes. Route handlers and
dependencies raise them; the exception handlers in api/main.py render them
into the JSON error envelope:

    {"error": {"code": <int>, "message": <str>}}

status_code is the HTTP status. code is the numeric code placed in the body,
which differs from the status for InvalidCredentials (HTTP 400, code 401).

Layer rule: core/ is the kernel. No imports from api/, auth/, or org/.
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base class for errors rendered as a JSON error envelope."""

    status_code: int = 500
    code: int = 500
    message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_body(self) -> dict[str, Any]:
        return {"error": {"code": self.code, "message": self.message}}


class InvalidCredentials(AppError):
    """Unknown email or wrong password. The two cases are indistinguishable."""

    status_code = 400
    code = 401
    message = "The provided credentials are incorrect."


class Unauthenticated(AppError):
    """Missing, malformed, expired, revoked, or mismatched bearer token."""

    status_code = 401
    code = 401
    message = "Unauthenticated."

    def to_body(self) -> dict[str, Any]:
        # Top-level "message" is the shape API clients already check for.
        return {"message": self.message, **super().to_body()}


class NotFound(AppError):
    status_code = 404
    code = 404

    def __init__(self, entity: str, entity_id: Any) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"Cannot find {entity} with id {entity_id}")


class ValidationFailed(AppError):
    """Malformed request payload or query parameters.

    errors maps a field name to the list of messages for that field.
    """

    status_code = 422
    code = 422
    message = "The given data was invalid."

    def __init__(self, errors: dict[str, list[str]] | None = None, message: str | None = None) -> None:
        self.errors = errors or {}
        super().__init__(message)

    @classmethod
    def from_pydantic(cls, errors: list[dict[str, Any]]) -> "ValidationFailed":
        """Group Pydantic/FastAPI error dicts by field name.

        The loc tuple starts with the source ("body", "query", "path"); the
        remaining parts form the dotted field name.
        """
        grouped: dict[str, list[str]] = {}
        for err in errors:
            loc = [str(part) for part in err.get("loc", ())]
            if len(loc) > 1 and loc[0] in ("body", "query", "path", "header"):
                loc = loc[1:]
            field = ".".join(loc) or "__root__"
            grouped.setdefault(field, []).append(str(err.get("msg", "Invalid value.")))
        return cls(grouped)

    def to_body(self) -> dict[str, Any]:
        body = super().to_body()
        body["error"]["errors"] = self.errors
        return body


class StorageFailure(AppError):
    """A write to the persistent store failed. Internal details stay in the log."""

    status_code = 500
    code = 500
    message = "Failed to save record."
