from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Mapping, Optional, Type

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from tablebase.api.fastapi.health import router as health_router
from tablebase.api.fastapi.middleware.errors.catchall import CatchAllExceptionMiddleware
from tablebase.api.fastapi.middleware.errors.handlers import register_error_handlers
from tablebase.api.fastapi.middleware.request_size_limit import RequestSizeLimitMiddleware
from tablebase.api.fastapi.routers import register_all_routers
from tablebase.api.fastapi.settings import ApiSettings, get_api_settings
from tablebase.app.core.env import get_env
from tablebase.app.settings import AppSettings, get_app_settings
from tablebase.db.registry import ProjectRegistry
from tablebase.db.settings import get_store_settings, get_tables_settings

logger = logging.getLogger(__name__)

PAGINATION_HEADERS = ["X-Total-Count", "X-Page", "X-Limit"]


def create_app(
    *,
    registry: Optional[ProjectRegistry] = None,
    data_dir: Optional[Path | str] = None,
    app_config: Optional[AppSettings] = None,
    api_config: Optional[ApiSettings] = None,
    schemas: Optional[Mapping[str, Type[BaseModel]]] = None,
) -> FastAPI:
    """
    Build the HTTP application.

    The registry is created from ``TABLEBASE_DATA_DIR`` unless ``registry``
    or ``data_dir`` is given; it lives on ``app.state.registry`` together
    with the table and user services.
    """
    from tablebase.tables.service import TableService
    from tablebase.users.service import UserService

    app_settings = app_config or get_app_settings()
    api_settings = api_config or get_api_settings()
    tables_settings = get_tables_settings()
    if registry is None:
        registry = ProjectRegistry(data_dir if data_dir is not None else get_store_settings().data_dir)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await registry.close()
        logger.info("Closed project registry at %s", registry.root)

    app = FastAPI(title=app_settings.name, version=app_settings.version, lifespan=lifespan)
    app.state.registry = registry
    app.state.tables = TableService(
        registry,
        schemas=schemas,
        default_limit=tables_settings.default_limit,
        max_limit=tables_settings.max_limit,
    )
    app.state.users = UserService(registry)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_settings.cors_origins,
        allow_credentials="*" not in api_settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=PAGINATION_HEADERS,
    )
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=api_settings.max_request_bytes)
    app.add_middleware(CatchAllExceptionMiddleware)
    register_error_handlers(app)

    app.include_router(health_router)
    register_all_routers(app, prefix=api_settings.prefix)

    logger.info(
        "%s version of %s initialized [env: %s, data: %s]",
        app_settings.version,
        app_settings.name,
        get_env(),
        registry.root,
    )
    return app


__all__ = ["create_app"]
