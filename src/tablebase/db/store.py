from __future__ import annotations

import copy
import functools
import json
import logging
import re
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Mapping, Optional, Sequence

from sqlalchemy import JSON, Column, Integer, MetaData, String, Table, delete, func, insert, select, text, update
from sqlalchemy.engine import URL
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool

from tablebase.exceptions import Conflict, StorageFailure, ValidationError

from .matching import Predicate, compile_predicate, get_path, sort_key

logger = logging.getLogger(__name__)

Document = dict[str, Any]

SYSTEM_FIELDS = ("_id", "createdAt", "updatedAt")

_UNIQUE_FIELD = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_DELETE_CHUNK = 500

metadata = MetaData()

documents = Table(
    "documents",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("doc_id", String(64), nullable=False, unique=True),
    Column("body", JSON, nullable=False),
)

_dumps = functools.partial(json.dumps, ensure_ascii=False, allow_nan=False)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _new_id() -> str:
    return uuid.uuid4().hex


def _check_keys(value: Any, where: str = "") -> None:
    if isinstance(value, Mapping):
        for key, item in value.items():
            if not isinstance(key, str):
                raise ValidationError(f"Field names must be strings (at '{where}')")
            if key.startswith("$") or "." in key:
                raise ValidationError(f"Field name '{key}' may not start with '$' or contain '.'")
            _check_keys(item, f"{where}.{key}" if where else key)
    elif isinstance(value, list):
        for item in value:
            _check_keys(item, where)


def sqlite_url(path: Path | str) -> URL:
    return URL.create("sqlite+aiosqlite", database=str(path))


class FileCollection:
    """One table persisted as its own SQLite file.

    Each row holds the document's ``_id`` and the whole JSON document; filters
    and sorting are evaluated over the decoded documents. The engine's pool is
    a single connection, so every operation on a file runs one after another
    and each one is a single transaction.
    """

    def __init__(
        self,
        path: Path | str,
        *,
        name: str | None = None,
        id_factory: Callable[[], str] | None = None,
        clock: Callable[[], str] | None = None,
    ):
        self.path = Path(path)
        self.name = name or self.path.stem
        self._id_factory = id_factory or _new_id
        self._clock = clock or utcnow_iso
        self._unique: set[str] = set()
        self._engine: AsyncEngine = create_async_engine(
            sqlite_url(self.path),
            future=True,
            poolclass=AsyncAdaptedQueuePool,
            pool_size=1,
            max_overflow=0,
            pool_timeout=30,
            json_serializer=_dumps,
        )
        self._session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self._engine, expire_on_commit=False
        )

    @classmethod
    async def open(cls, path: Path | str, **kwargs: Any) -> "FileCollection":
        collection = cls(path, **kwargs)
        await collection.create_schema()
        return collection

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def create_schema(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with self._engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
        except (OSError, SQLAlchemyError) as exc:
            logger.exception("Could not open collection %s", self.name)
            raise StorageFailure() from exc
        logger.debug("Opened collection %s at %s", self.name, self.path)

    async def close(self) -> None:
        await self._engine.dispose()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except IntegrityError as exc:
            raise Conflict("Duplicate value for a unique field") from exc
        except SQLAlchemyError as exc:
            logger.exception("Storage failed for collection %s", self.name)
            raise StorageFailure() from exc

    async def ensure_unique(self, field: str) -> None:
        """Index ``field`` so that two documents never share a value for it."""
        if field in self._unique:
            return
        if not _UNIQUE_FIELD.match(field):
            raise ValueError(f"Cannot index field '{field}'")
        async with self.transaction() as session:
            await session.execute(
                text(f"CREATE UNIQUE INDEX IF NOT EXISTS uq_{field} ON documents (json_extract(body, '$.{field}'))")
            )
        self._unique.add(field)

    async def vacuum(self) -> int:
        """Rebuild the database file; returns the number of stored documents."""
        try:
            async with self._engine.connect() as conn:
                conn = await conn.execution_options(isolation_level="AUTOCOMMIT")
                await conn.execute(text("VACUUM"))
        except SQLAlchemyError as exc:
            logger.exception("Vacuum failed for collection %s", self.name)
            raise StorageFailure() from exc
        return await self.count()

    # ------------------------------------------------------------- helpers

    def _prepare(self, doc: Any) -> Document:
        if not isinstance(doc, Mapping):
            raise ValidationError("Document must be an object")
        _check_keys(doc)
        body = {k: copy.deepcopy(v) for k, v in doc.items() if k not in SYSTEM_FIELDS}
        try:
            _dumps(body)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Document is not JSON serializable: {exc}") from exc
        return body

    @staticmethod
    async def _select(
        session: AsyncSession,
        predicate: Predicate,
        sort_field: Optional[str] = None,
        sort_order: int = 1,
    ) -> list[Document]:
        result = await session.execute(select(documents.c.body).order_by(documents.c.seq))
        matches = [doc for doc in result.scalars() if predicate(doc)]
        if sort_field:
            matches.sort(key=lambda d: sort_key(get_path(d, sort_field)), reverse=sort_order < 0)
        return matches

    @staticmethod
    async def _body(session: AsyncSession, doc_id: str) -> Document | None:
        result = await session.execute(select(documents.c.body).where(documents.c.doc_id == doc_id))
        return result.scalar_one_or_none()

    # ---------------------------------------------------------- operations

    async def insert(self, doc: Mapping[str, Any]) -> Document:
        return (await self.insert_many([doc]))[0]

    async def insert_many(self, docs: Sequence[Mapping[str, Any]]) -> list[Document]:
        """Insert every document in one transaction; nothing is kept if one fails."""
        bodies = [self._prepare(doc) for doc in docs]
        if not bodies:
            return []
        now = self._clock()
        stored = [{"_id": self._id_factory(), **body, "createdAt": now} for body in bodies]
        async with self.transaction() as session:
            await session.execute(insert(documents), [{"doc_id": d["_id"], "body": d} for d in stored])
        return stored

    async def find_one(self, query: Mapping[str, Any] | None = None) -> Document | None:
        predicate = compile_predicate(query)
        async with self.transaction() as session:
            matches = await self._select(session, predicate)
        return matches[0] if matches else None

    async def get(self, doc_id: str) -> Document | None:
        async with self.transaction() as session:
            return await self._body(session, doc_id)

    async def find(
        self,
        query: Mapping[str, Any] | None = None,
        *,
        sort_field: Optional[str] = None,
        sort_order: int = 1,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[Document]:
        items, _ = await self.find_page(
            query, sort_field=sort_field, sort_order=sort_order, skip=skip, limit=limit
        )
        return items

    async def find_page(
        self,
        query: Mapping[str, Any] | None = None,
        *,
        sort_field: Optional[str] = None,
        sort_order: int = 1,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> tuple[list[Document], int]:
        """Matching page plus the total match count, read in one transaction."""
        predicate = compile_predicate(query)
        async with self.transaction() as session:
            matches = await self._select(session, predicate, sort_field, sort_order)
        end = None if limit is None else skip + limit
        return matches[skip:end], len(matches)

    async def count(self, query: Mapping[str, Any] | None = None) -> int:
        predicate = compile_predicate(query)
        async with self.transaction() as session:
            if not query:
                return int(await session.scalar(select(func.count()).select_from(documents)) or 0)
            return len(await self._select(session, predicate))

    async def update_one(self, doc_id: str, doc: Mapping[str, Any]) -> int:
        """Replace a document by id, keeping ``_id`` and ``createdAt``."""
        body = self._prepare(doc)
        async with self.transaction() as session:
            old = await self._body(session, doc_id)
            if old is None:
                return 0
            new = {"_id": doc_id, **body, "createdAt": old.get("createdAt"), "updatedAt": self._clock()}
            await session.execute(update(documents).where(documents.c.doc_id == doc_id).values(body=new))
            return 1

    async def update_many(
        self,
        query: Mapping[str, Any] | None,
        patch: Mapping[str, Any],
        *,
        check: Optional[Callable[[Document], None]] = None,
    ) -> int:
        """Shallow-merge ``patch`` into every match; returns the number modified.

        ``check`` sees each merged document before anything is written and may
        raise to abort the whole update.
        """
        body = self._prepare(patch)
        predicate = compile_predicate(query)
        async with self.transaction() as session:
            now = self._clock()
            updated = [
                {**doc, **copy.deepcopy(body), "updatedAt": now}
                for doc in await self._select(session, predicate)
            ]
            if check is not None:
                for doc in updated:
                    check(doc)
            for doc in updated:
                await session.execute(
                    update(documents).where(documents.c.doc_id == doc["_id"]).values(body=doc)
                )
        return len(updated)

    async def remove_one(self, doc_id: str) -> int:
        async with self.transaction() as session:
            result = await session.execute(delete(documents).where(documents.c.doc_id == doc_id))
            return result.rowcount or 0

    async def remove_many(self, query: Mapping[str, Any] | None = None) -> int:
        predicate = compile_predicate(query)
        async with self.transaction() as session:
            ids = [doc["_id"] for doc in await self._select(session, predicate)]
            for start in range(0, len(ids), _DELETE_CHUNK):
                chunk = ids[start : start + _DELETE_CHUNK]
                await session.execute(delete(documents).where(documents.c.doc_id.in_(chunk)))
        return len(ids)

    def __repr__(self) -> str:
        return f"FileCollection(name={self.name!r}, path={str(self.path)!r})"


__all__ = ["Document", "FileCollection", "SYSTEM_FIELDS", "sqlite_url", "utcnow_iso"]
