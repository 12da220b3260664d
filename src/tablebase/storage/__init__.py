from __future__ import annotations

import re
import time
from typing import Optional

from tablebase.db.registry import ProjectRegistry

from .backends.local import LocalBackend
from .base import FileNotFound, InvalidKeyError, StorageBackend, StorageError

_UNSAFE = re.compile(r"[^A-Za-z0-9._ -]")


def stored_name(original: Optional[str], *, now_ms: Optional[int] = None) -> str:
    """``<epoch-ms>-<original name>`` with any directory part and odd characters removed."""
    base = (original or "").replace("\\", "/").rsplit("/", 1)[-1]
    base = _UNSAFE.sub("_", base).lstrip(".").strip() or "file"
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{stamp}-{base}"[:255]


def backend_for(registry: ProjectRegistry, project: str) -> LocalBackend:
    return LocalBackend(registry.uploads_dir(project))


__all__ = [
    "FileNotFound",
    "InvalidKeyError",
    "LocalBackend",
    "StorageBackend",
    "StorageError",
    "backend_for",
    "stored_name",
]
