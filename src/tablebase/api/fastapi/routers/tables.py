from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Request, Response, status

from tablebase.api.fastapi.dependencies.auth import current_claims
from tablebase.api.fastapi.dependencies.project import get_project
from tablebase.api.fastapi.dependencies.services import get_table_service
from tablebase.db.registry import ProjectHandle
from tablebase.tables.schemas import BulkOut, CountOut, DeletedOut, FolderOut, ModifiedOut
from tablebase.tables.service import TableService

ROUTER_PREFIX = "/tables"
ROUTER_TAG = "tables"

router = APIRouter(dependencies=[Depends(current_claims)])


def _params(request: Request) -> dict[str, str]:
    return dict(request.query_params)


# fixed sub-paths first so they are never taken for a document id


@router.post("/{table}/bulk", status_code=status.HTTP_201_CREATED, response_model=BulkOut)
async def bulk_create(
    table: str,
    documents: list[Any] = Body(...),
    project: ProjectHandle = Depends(get_project),
    tables: TableService = Depends(get_table_service),
):
    stored = await tables.bulk_create(project.name, table, documents)
    return BulkOut(inserted=len(stored), documents=stored)


@router.post("/{table}/_count", response_model=CountOut)
async def count(
    table: str,
    filter: Optional[dict[str, Any]] = Body(default=None),
    project: ProjectHandle = Depends(get_project),
    tables: TableService = Depends(get_table_service),
):
    return CountOut(count=await tables.count(project.name, table, filter))


@router.post("/{table}/_folders", status_code=status.HTTP_201_CREATED, response_model=FolderOut)
async def create_folder(
    table: str,
    project: ProjectHandle = Depends(get_project),
    tables: TableService = Depends(get_table_service),
):
    return FolderOut(folder=await tables.create_folder(project.name, table))


@router.get("/{table}")
async def list_documents(
    table: str,
    request: Request,
    response: Response,
    project: ProjectHandle = Depends(get_project),
    tables: TableService = Depends(get_table_service),
) -> list[dict[str, Any]]:
    page = await tables.list(project.name, table, _params(request))
    response.headers["X-Total-Count"] = str(page.total)
    response.headers["X-Page"] = str(page.page)
    response.headers["X-Limit"] = str(page.limit)
    return page.items


@router.post("/{table}", status_code=status.HTTP_201_CREATED)
async def create_document(
    table: str,
    document: dict[str, Any] = Body(...),
    project: ProjectHandle = Depends(get_project),
    tables: TableService = Depends(get_table_service),
) -> dict[str, Any]:
    return await tables.create(project.name, table, document)


@router.patch("/{table}", response_model=ModifiedOut)
async def patch_documents(
    table: str,
    request: Request,
    patch: dict[str, Any] = Body(...),
    project: ProjectHandle = Depends(get_project),
    tables: TableService = Depends(get_table_service),
):
    return ModifiedOut(modified=await tables.patch(project.name, table, _params(request), patch))


@router.delete("/{table}", response_model=DeletedOut)
async def delete_documents(
    table: str,
    request: Request,
    project: ProjectHandle = Depends(get_project),
    tables: TableService = Depends(get_table_service),
):
    return DeletedOut(deleted=await tables.delete_where(project.name, table, _params(request)))


@router.get("/{table}/{doc_id}")
async def get_document(
    table: str,
    doc_id: str,
    project: ProjectHandle = Depends(get_project),
    tables: TableService = Depends(get_table_service),
) -> dict[str, Any]:
    return await tables.get(project.name, table, doc_id)


@router.put("/{table}/{doc_id}", response_model=ModifiedOut)
async def replace_document(
    table: str,
    doc_id: str,
    document: dict[str, Any] = Body(...),
    project: ProjectHandle = Depends(get_project),
    tables: TableService = Depends(get_table_service),
):
    return ModifiedOut(modified=await tables.replace(project.name, table, doc_id, document))


@router.delete("/{table}/{doc_id}", response_model=DeletedOut)
async def delete_document(
    table: str,
    doc_id: str,
    project: ProjectHandle = Depends(get_project),
    tables: TableService = Depends(get_table_service),
):
    return DeletedOut(deleted=await tables.delete(project.name, table, doc_id))
