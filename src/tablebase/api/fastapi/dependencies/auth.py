from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import Depends, Request

from tablebase.api.fastapi.dependencies.project import get_registry, project_name
from tablebase.exceptions import TokenInvalid, Unauthorized
from tablebase.security.tokens import TokenClaims, verify_token


def bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_bearer(request: Request) -> str:
    token = bearer_token(request)
    if token is None:
        raise Unauthorized()
    return token


async def current_claims(request: Request, token: str = Depends(require_bearer)) -> TokenClaims:
    """No token -> 401; token not valid for this project's secret -> 403.

    Only projects that already exist are looked up, so a token-gated request
    never creates one.
    """
    handle = await asyncio.to_thread(get_registry(request).lookup, project_name(request))
    if handle is None:
        raise TokenInvalid()
    claims = verify_token(handle.secret, token)
    request.state.project = handle.name
    request.state.user_id = claims.user_id
    return claims
