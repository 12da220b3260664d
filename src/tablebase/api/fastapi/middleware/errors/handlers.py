from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from tablebase.exceptions import TablebaseError, Unauthorized

logger = logging.getLogger(__name__)


def _log_extra(request: Request, status: int) -> dict:
    return {
        "project": getattr(request.state, "project", None),
        "http_method": request.method,
        "path": request.url.path,
        "status_code": status,
    }


def register_error_handlers(app: FastAPI) -> None:
    """Render every expected error as ``{"error": ..., "code": ...}``."""

    @app.exception_handler(TablebaseError)
    async def _handle_tablebase_error(request: Request, exc: TablebaseError):
        extra = _log_extra(request, exc.status_code)
        if exc.status_code >= 500:
            logger.error("%s on %s", type(exc).__name__, request.url.path, exc_info=exc, extra=extra)
        else:
            logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc.message, extra=extra)
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def _handle_request_validation(request: Request, exc: RequestValidationError):
        logger.info("Invalid request on %s", request.url.path, extra=_log_extra(request, 400))
        errors = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "code": "VALIDATION_ERROR", "errors": jsonable_encoder(errors)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def _handle_http_exception(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail, "code": "HTTP_ERROR"},
            headers=getattr(exc, "headers", None),
        )
