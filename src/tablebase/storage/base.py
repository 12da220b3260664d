"""Storage backend contract for uploaded files."""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from tablebase.exceptions import NotFound, StorageFailure, ValidationError

METADATA_SUFFIX = ".meta.json"
MAX_KEY_LENGTH = 255


class StorageError(StorageFailure):
    """Backend failed to read or write a stored file."""


class FileNotFound(NotFound):
    code = "FILE_NOT_FOUND"

    @classmethod
    def default_message(cls) -> str:
        return "File not found"


class InvalidKeyError(ValidationError):
    code = "INVALID_KEY"


@runtime_checkable
class StorageBackend(Protocol):
    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Store ``data`` under ``key``; returns the stored metadata."""
        ...

    async def get(self, key: str) -> bytes:
        ...

    async def delete(self, key: str) -> bool:
        ...

    async def exists(self, key: str) -> bool:
        ...

    async def get_metadata(self, key: str) -> dict[str, Any]:
        ...

    async def list_keys(self, prefix: str = "", limit: Optional[int] = None) -> list[str]:
        ...


__all__ = [
    "FileNotFound",
    "InvalidKeyError",
    "MAX_KEY_LENGTH",
    "METADATA_SUFFIX",
    "StorageBackend",
    "StorageError",
]
