from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from fastapi.responses import Response
from pydantic import BaseModel

from tablebase.api.fastapi.dependencies.auth import current_claims
from tablebase.api.fastapi.dependencies.services import get_storage
from tablebase.api.fastapi.settings import get_api_settings
from tablebase.exceptions import ValidationError
from tablebase.storage import FileNotFound, LocalBackend, stored_name
from tablebase.users.schemas import MessageOut

logger = logging.getLogger(__name__)

ROUTER_PREFIX = "/storage"
ROUTER_TAG = "storage"

router = APIRouter(dependencies=[Depends(current_claims)])


class StoredFileOut(BaseModel):
    filename: str
    originalname: str
    size: int
    mimetype: str


class UploadOut(BaseModel):
    message: str
    files: list[StoredFileOut]


@router.post("/upload", status_code=status.HTTP_201_CREATED, response_model=UploadOut)
async def upload_files(
    request: Request,
    files: Optional[list[UploadFile]] = File(default=None),
    storage: LocalBackend = Depends(get_storage),
):
    if not files:
        raise ValidationError("Please upload at least one file.")
    limit = get_api_settings().max_upload_files
    if len(files) > limit:
        raise ValidationError(f"At most {limit} files per upload")

    stored: list[StoredFileOut] = []
    for upload in files:
        data = await upload.read()
        name = stored_name(upload.filename)
        mimetype = upload.content_type or "application/octet-stream"
        await storage.put(name, data, mimetype, metadata={"originalname": upload.filename or ""})
        stored.append(
            StoredFileOut(filename=name, originalname=upload.filename or "", size=len(data), mimetype=mimetype)
        )
    logger.info(
        "Stored %d uploaded files", len(stored), extra={"project": getattr(request.state, "project", None)}
    )
    return UploadOut(message="Files uploaded successfully", files=stored)


@router.get("/files", response_model=list[str])
async def list_files(storage: LocalBackend = Depends(get_storage)):
    return await storage.list_keys()


@router.get("/files/{filename}")
async def download_file(filename: str, storage: LocalBackend = Depends(get_storage)) -> Response:
    data = await storage.get(filename)
    meta = await storage.get_metadata(filename)
    return Response(
        content=data,
        media_type=meta.get("content_type") or "application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.delete("/files/{filename}", response_model=MessageOut)
async def delete_file(filename: str, storage: LocalBackend = Depends(get_storage)):
    if not await storage.delete(filename):
        raise FileNotFound()
    return MessageOut(message="File deleted successfully")
