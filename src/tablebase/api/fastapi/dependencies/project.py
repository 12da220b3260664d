from __future__ import annotations

import asyncio

from fastapi import Request

from tablebase.api.fastapi.settings import get_api_settings
from tablebase.db.registry import ProjectHandle, ProjectRegistry
from tablebase.exceptions import InvalidProject


def get_registry(request: Request) -> ProjectRegistry:
    return request.app.state.registry  # type: ignore[attr-defined]


def project_name(request: Request) -> str:
    header = get_api_settings().project_header
    name = request.headers.get(header)
    if not name:
        raise InvalidProject(f"Missing {header} header")
    return name


async def get_project(request: Request) -> ProjectHandle:
    """Resolve the project named by the identification header, creating it on first use."""
    handle = await asyncio.to_thread(get_registry(request).resolve, project_name(request))
    request.state.project = handle.name
    return handle
