"""
Filesystem storage backend.

Files live flat inside ``base_path``; each key is a single file name. A
``<key>.meta.json`` sidecar records content type, size and any caller
metadata (e.g. the client's original file name).
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from ..base import MAX_KEY_LENGTH, METADATA_SUFFIX, FileNotFound, InvalidKeyError, StorageError

logger = logging.getLogger(__name__)


def _validate_key(key: str) -> None:
    if not key or not key.strip():
        raise InvalidKeyError("File name is required")
    if len(key) > MAX_KEY_LENGTH:
        raise InvalidKeyError(f"File name longer than {MAX_KEY_LENGTH} characters")
    if key in (".", "..") or key.startswith(".") or any(ch in key for ch in ("/", "\\", "\x00")):
        raise InvalidKeyError(f"Invalid file name '{key}'")
    if key.endswith(METADATA_SUFFIX):
        raise InvalidKeyError(f"File names may not end with '{METADATA_SUFFIX}'")


class LocalBackend:
    def __init__(self, base_path: str | Path):
        self.base_path = Path(base_path)

    def _get_file_path(self, key: str) -> Path:
        _validate_key(key)
        return self.base_path / key

    def _get_metadata_path(self, key: str) -> Path:
        return self._get_file_path(key).with_name(key + METADATA_SUFFIX)

    # -------------------------------------------------------- sync helpers

    def _write(self, key: str, data: bytes, meta: dict[str, Any]) -> None:
        path = self._get_file_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(f"{path.suffix}.tmp")
        tmp.write_bytes(data)
        os.replace(tmp, path)
        self._get_metadata_path(key).write_text(json.dumps(meta), encoding="utf-8")

    def _read_metadata(self, key: str) -> dict[str, Any]:
        path = self._get_file_path(key)
        if not path.is_file():
            raise FileNotFound()
        meta_path = self._get_metadata_path(key)
        if meta_path.exists():
            return json.loads(meta_path.read_text(encoding="utf-8"))
        stat = path.stat()
        return {
            "size": stat.st_size,
            "content_type": "application/octet-stream",
            "created_at": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
        }

    def _remove(self, key: str) -> bool:
        path = self._get_file_path(key)
        if not path.is_file():
            return False
        path.unlink()
        self._get_metadata_path(key).unlink(missing_ok=True)
        return True

    def _list(self, prefix: str, limit: Optional[int]) -> list[str]:
        if not self.base_path.is_dir():
            return []
        keys = sorted(
            p.name
            for p in self.base_path.iterdir()
            if p.is_file()
            and not p.name.endswith(METADATA_SUFFIX)
            and not p.name.endswith(".tmp")
            and p.name.startswith(prefix)
        )
        return keys[:limit] if limit is not None else keys

    async def _run(self, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except (OSError, json.JSONDecodeError) as exc:
            logger.exception("Storage operation %s failed", getattr(fn, "__name__", fn))
            raise StorageError() from exc

    # ----------------------------------------------------------------- api

    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        _validate_key(key)
        meta = {
            **(metadata or {}),
            "size": len(data),
            "content_type": content_type or "application/octet-stream",
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        await self._run(self._write, key, data, meta)
        logger.debug("Stored %s (%d bytes)", key, len(data))
        return meta

    async def get(self, key: str) -> bytes:
        path = self._get_file_path(key)
        if not await asyncio.to_thread(path.is_file):
            raise FileNotFound()
        return await self._run(path.read_bytes)

    async def delete(self, key: str) -> bool:
        return await self._run(self._remove, key)

    async def exists(self, key: str) -> bool:
        return await asyncio.to_thread(self._get_file_path(key).is_file)

    async def get_metadata(self, key: str) -> dict[str, Any]:
        _validate_key(key)
        return await self._run(self._read_metadata, key)

    async def list_keys(self, prefix: str = "", limit: Optional[int] = None) -> list[str]:
        return await self._run(self._list, prefix, limit)


__all__ = ["LocalBackend"]
