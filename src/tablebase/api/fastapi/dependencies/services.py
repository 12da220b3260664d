from __future__ import annotations

from fastapi import Depends, Request

from tablebase.db.registry import ProjectHandle
from tablebase.storage import LocalBackend, backend_for
from tablebase.tables.service import TableService
from tablebase.users.service import UserService

from .project import get_project, get_registry


def get_table_service(request: Request) -> TableService:
    return request.app.state.tables  # type: ignore[attr-defined]


def get_user_service(request: Request) -> UserService:
    return request.app.state.users  # type: ignore[attr-defined]


def get_storage(request: Request, project: ProjectHandle = Depends(get_project)) -> LocalBackend:
    return backend_for(get_registry(request), project.name)
