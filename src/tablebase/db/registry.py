from __future__ import annotations

import asyncio
import json
import logging
import os
import secrets
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Type

from tablebase.exceptions import InvalidProject, StorageFailure, ValidationError

from .store import FileCollection, utcnow_iso

logger = logging.getLogger(__name__)

PROJECT_CONFIG = "project.json"
UPLOADS_DIR = "uploads"
FOLDERS_DIR = "folders"
USERS_TABLE = "_users"

MAX_NAME_LENGTH = 128


def default_secret() -> bytes:
    return secrets.token_bytes(32)


def check_component(name: object, label: str, error: Type[ValidationError] = ValidationError) -> str:
    """Validate a user-supplied name that becomes a single path component."""
    if not isinstance(name, str) or not name.strip():
        raise error(f"{label} name is required")
    if (
        len(name) > MAX_NAME_LENGTH
        or name.startswith(".")
        or any(ch in name for ch in ("/", "\\", "\x00"))
    ):
        raise error(f"Invalid {label.lower()} name '{name[:MAX_NAME_LENGTH]}'")
    return name


@dataclass(frozen=True)
class ProjectHandle:
    name: str
    path: Path
    secret: bytes = field(repr=False)


class ProjectRegistry:
    """Maps project names to their directory, signing secret and open collections.

    One instance is owned by the application (``app.state.registry``) and
    shared by every request. Collections are opened on first reference per
    (project, table) and kept open for the registry's lifetime.
    """

    def __init__(
        self,
        root: Path | str,
        *,
        secret_factory: Optional[Callable[[], bytes]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.root = Path(root)
        self._secret_factory = secret_factory or default_secret
        self._id_factory = id_factory
        self._secrets: dict[str, bytes] = {}
        self._secret_lock = threading.Lock()
        self._collections: dict[tuple[str, str], FileCollection] = {}
        self._open_locks: dict[tuple[str, str], asyncio.Lock] = {}

    # ------------------------------------------------------------ projects

    def project_dir(self, name: str) -> Path:
        return self.root / check_component(name, "Project", InvalidProject)

    def resolve(self, name: str) -> ProjectHandle:
        path = self.project_dir(name)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.exception("Could not create project directory for %s", name)
            raise StorageFailure() from exc
        return ProjectHandle(name=name, path=path, secret=self.get_secret(name))

    def lookup(self, name: str) -> Optional[ProjectHandle]:
        """Like ``resolve`` but returns ``None`` for a project that does not exist yet."""
        path = self.project_dir(name)
        if not (path / PROJECT_CONFIG).is_file():
            return None
        return ProjectHandle(name=name, path=path, secret=self.get_secret(name))

    def _config_path(self, name: str) -> Path:
        return self.project_dir(name) / PROJECT_CONFIG

    def _read_config(self, name: str) -> dict:
        path = self._config_path(name)
        if not path.exists():
            return {}
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.exception("Unreadable project config for %s", name)
            raise StorageFailure() from exc

    def _write_config(self, name: str, config: dict) -> None:
        path = self._config_path(name)
        tmp = path.with_name(path.name + "~")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(config, indent=2), encoding="utf-8")
            os.chmod(tmp, 0o600)
            os.replace(tmp, path)
        except OSError as exc:
            logger.exception("Could not persist project config for %s", name)
            raise StorageFailure() from exc

    def _generate_secret(self) -> bytes:
        secret = self._secret_factory()
        if not isinstance(secret, bytes) or not secret:
            raise TypeError("secret_factory must return non-empty bytes")
        return secret

    def get_secret(self, name: str) -> bytes:
        """Signing secret of ``name``, generated and persisted on first access."""
        cached = self._secrets.get(name)
        if cached is not None:
            return cached
        with self._secret_lock:
            if name in self._secrets:
                return self._secrets[name]
            config = self._read_config(name)
            encoded = config.get("jwt_secret")
            if encoded:
                secret = bytes.fromhex(encoded)
            else:
                secret = self._generate_secret()
                config.update(
                    name=name,
                    jwt_secret=secret.hex(),
                    created_at=config.get("created_at") or utcnow_iso(),
                )
                self._write_config(name, config)
                logger.info("Created signing secret for project %s", name, extra={"project": name})
            self._secrets[name] = secret
            return secret

    def rotate_secret(self, name: str) -> bytes:
        """Replace the signing secret; every token issued before becomes invalid."""
        with self._secret_lock:
            config = self._read_config(name)
            secret = self._generate_secret()
            config.update(
                name=name,
                jwt_secret=secret.hex(),
                rotated_at=utcnow_iso(),
            )
            config.setdefault("created_at", config["rotated_at"])
            self._write_config(name, config)
            self._secrets[name] = secret
        logger.warning("Rotated signing secret for project %s", name, extra={"project": name})
        return secret

    def uploads_dir(self, name: str) -> Path:
        return self.project_dir(name) / UPLOADS_DIR

    def create_folder(self, name: str, table: str) -> Path:
        folder = self.project_dir(name) / FOLDERS_DIR / check_component(table, "Table")
        try:
            folder.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.exception("Could not create folder marker %s/%s", name, table)
            raise StorageFailure() from exc
        return folder

    # --------------------------------------------------------- collections

    async def get_collection(self, name: str, table: str) -> FileCollection:
        key = (name, table)
        collection = self._collections.get(key)
        if collection is not None:
            return collection

        lock = self._open_locks.setdefault(key, asyncio.Lock())
        async with lock:
            collection = self._collections.get(key)
            if collection is None:
                handle = await asyncio.to_thread(self.resolve, name)
                path = handle.path / f"{check_component(table, 'Table')}.db"
                collection = await FileCollection.open(path, name=table, id_factory=self._id_factory)
                self._collections[key] = collection
                logger.debug("Opened collection %s/%s", name, table)
        return collection

    @property
    def open_collections(self) -> int:
        return len(self._collections)

    async def close(self) -> None:
        """Dispose every open collection engine."""
        collections = list(self._collections.values())
        self._collections.clear()
        for collection in collections:
            await collection.close()
        self._open_locks.clear()
        self._secrets.clear()


__all__ = [
    "ProjectHandle",
    "ProjectRegistry",
    "USERS_TABLE",
    "check_component",
    "default_secret",
]
