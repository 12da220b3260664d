from __future__ import annotations

from typing import Any, Iterable


class TablebaseError(Exception):
    """Base class for every error the service reports to clients."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message()
        super().__init__(self.message)

    @classmethod
    def default_message(cls) -> str:
        return cls.code.replace("_", " ").capitalize()

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "code": self.code}


class ValidationError(TablebaseError):
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: str | None = None, errors: Iterable[Any] | None = None):
        super().__init__(message)
        self.errors = list(errors or [])

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        if self.errors:
            body["errors"] = self.errors
        return body


class InvalidProject(ValidationError):
    code = "INVALID_PROJECT"


class Unauthorized(TablebaseError):
    status_code = 401
    code = "UNAUTHORIZED"

    @classmethod
    def default_message(cls) -> str:
        return "Unauthorized"


class Forbidden(TablebaseError):
    status_code = 403
    code = "FORBIDDEN"

    @classmethod
    def default_message(cls) -> str:
        return "Forbidden"


class TokenInvalid(Forbidden):
    code = "TOKEN_INVALID"


class TokenExpired(Forbidden):
    code = "TOKEN_EXPIRED"


class NotFound(TablebaseError):
    status_code = 404
    code = "NOT_FOUND"

    @classmethod
    def default_message(cls) -> str:
        return "Not found"


class Conflict(TablebaseError):
    status_code = 409
    code = "CONFLICT"


class StorageFailure(TablebaseError):
    """Underlying disk I/O failed; details stay in the server log."""

    status_code = 500
    code = "STORAGE_FAILURE"

    @classmethod
    def default_message(cls) -> str:
        return "Internal storage error"


__all__ = [
    "TablebaseError",
    "ValidationError",
    "InvalidProject",
    "Unauthorized",
    "Forbidden",
    "TokenInvalid",
    "TokenExpired",
    "NotFound",
    "Conflict",
    "StorageFailure",
]
