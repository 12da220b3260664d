from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from tablebase.db.query import compile_filter, compile_query
from tablebase.db.registry import ProjectRegistry, check_component
from tablebase.db.store import SYSTEM_FIELDS, Document, FileCollection
from tablebase.exceptions import NotFound, ValidationError

from .schemas import TableDocument

logger = logging.getLogger(__name__)


@dataclass
class Page:
    items: list[Document]
    total: int
    page: int
    limit: int


def _schema_errors(exc: PydanticValidationError, index: Optional[int] = None) -> list[dict[str, Any]]:
    errors = []
    for err in exc.errors():
        entry: dict[str, Any] = {
            "field": ".".join(str(p) for p in err.get("loc", ())),
            "msg": err.get("msg"),
        }
        if index is not None:
            entry["index"] = index
        errors.append(entry)
    return errors


def check_table_name(table: str) -> str:
    check_component(table, "Table")
    if table.startswith("_"):
        raise ValidationError(f"Table name '{table}' is reserved")
    return table


class TableService:
    """Table CRUD on top of the project registry.

    Documents are validated against ``schemas[table]`` when one is
    registered, otherwise against ``default_schema``; pass
    ``default_schema=None`` to store unvalidated documents.
    """

    def __init__(
        self,
        registry: ProjectRegistry,
        *,
        default_schema: Optional[Type[BaseModel]] = TableDocument,
        schemas: Optional[Mapping[str, Type[BaseModel]]] = None,
        default_limit: int = 10,
        max_limit: Optional[int] = 1000,
    ):
        self.registry = registry
        self.default_schema = default_schema
        self.schemas = dict(schemas or {})
        self.default_limit = default_limit
        self.max_limit = max_limit

    async def _collection(self, project: str, table: str) -> FileCollection:
        return await self.registry.get_collection(project, check_table_name(table))

    def schema_for(self, table: str) -> Optional[Type[BaseModel]]:
        return self.schemas.get(table, self.default_schema)

    def validate(self, table: str, doc: Any, *, index: Optional[int] = None) -> None:
        if not isinstance(doc, Mapping):
            raise ValidationError(
                "Document must be an object",
                errors=[{"index": index, "msg": "not an object"}] if index is not None else None,
            )
        schema = self.schema_for(table)
        if schema is None:
            return
        body = {k: v for k, v in doc.items() if k not in SYSTEM_FIELDS}
        try:
            schema.model_validate(body)
        except PydanticValidationError as exc:
            raise ValidationError("Document failed validation", errors=_schema_errors(exc, index)) from None

    # ------------------------------------------------------------- create

    async def create(self, project: str, table: str, doc: Mapping[str, Any]) -> Document:
        self.validate(table, doc)
        collection = await self._collection(project, table)
        stored = await collection.insert(doc)
        logger.debug("Inserted %s into %s/%s", stored["_id"], project, table)
        return stored

    async def bulk_create(self, project: str, table: str, docs: Sequence[Any]) -> list[Document]:
        """Validate every document first; a single failure inserts nothing."""
        if not isinstance(docs, Sequence) or isinstance(docs, (str, bytes)) or not docs:
            raise ValidationError("Body must be a non-empty array of documents")
        errors: list[dict[str, Any]] = []
        for index, doc in enumerate(docs):
            try:
                self.validate(table, doc, index=index)
            except ValidationError as exc:
                errors.extend(exc.errors or [{"index": index, "msg": exc.message}])
        if errors:
            raise ValidationError("One or more documents failed validation", errors=errors)
        collection = await self._collection(project, table)
        stored = await collection.insert_many(docs)
        logger.info("Bulk inserted %d documents into %s/%s", len(stored), project, table)
        return stored

    # --------------------------------------------------------------- read

    async def list(self, project: str, table: str, params: Mapping[str, Any]) -> Page:
        query = compile_query(params, default_limit=self.default_limit, max_limit=self.max_limit)
        collection = await self._collection(project, table)
        items, total = await collection.find_page(
            query.filter,
            sort_field=query.sort_field,
            sort_order=query.sort_order,
            skip=query.skip,
            limit=query.limit,
        )
        return Page(items=items, total=total, page=query.page, limit=query.limit)

    async def get(self, project: str, table: str, doc_id: str) -> Document:
        collection = await self._collection(project, table)
        doc = await collection.get(doc_id)
        if doc is None:
            raise NotFound("Document not found")
        return doc

    async def count(self, project: str, table: str, raw_filter: Any) -> int:
        if raw_filter is None:
            raw_filter = {}
        if not isinstance(raw_filter, Mapping):
            raise ValidationError("Filter must be an object")
        collection = await self._collection(project, table)
        return await collection.count(raw_filter)

    # ------------------------------------------------------------- update

    async def replace(self, project: str, table: str, doc_id: str, doc: Mapping[str, Any]) -> int:
        self.validate(table, doc)
        collection = await self._collection(project, table)
        modified = await collection.update_one(doc_id, doc)
        if not modified:
            raise NotFound("Document not found")
        return modified

    async def patch(
        self,
        project: str,
        table: str,
        params: Mapping[str, Any],
        patch: Any,
    ) -> int:
        if not isinstance(patch, Mapping) or not patch:
            raise ValidationError("Patch body must be a non-empty object")
        collection = await self._collection(project, table)
        return await collection.update_many(
            compile_filter(params),
            patch,
            check=lambda merged: self.validate(table, merged),
        )

    # ------------------------------------------------------------- delete

    async def delete(self, project: str, table: str, doc_id: str) -> int:
        collection = await self._collection(project, table)
        removed = await collection.remove_one(doc_id)
        if not removed:
            raise NotFound("Document not found")
        return removed

    async def delete_where(self, project: str, table: str, params: Mapping[str, Any]) -> int:
        collection = await self._collection(project, table)
        removed = await collection.remove_many(compile_filter(params))
        if removed:
            logger.info("Removed %d documents from %s/%s", removed, project, table)
        return removed

    async def create_folder(self, project: str, table: str) -> str:
        check_table_name(table)
        await asyncio.to_thread(self.registry.create_folder, project, table)
        return table


__all__ = ["Page", "TableService", "check_table_name"]
