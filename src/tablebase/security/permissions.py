from __future__ import annotations

from typing import Iterable

from fastapi import Depends

from tablebase.api.fastapi.dependencies.auth import current_claims
from tablebase.exceptions import Forbidden
from tablebase.security.tokens import TokenClaims

ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLES = frozenset({ROLE_ADMIN, ROLE_USER})


def authorize(claims: TokenClaims, required_roles: Iterable[str]) -> bool:
    return claims.role in set(required_roles)


def RequireRoles(*roles: str):
    """FastAPI dependency: the caller's role must be one of ``roles``."""

    async def _guard(claims: TokenClaims = Depends(current_claims)) -> TokenClaims:
        if not authorize(claims, roles):
            raise Forbidden("Insufficient role")
        return claims

    return Depends(_guard)


__all__ = ["ROLE_ADMIN", "ROLE_USER", "ROLES", "authorize", "RequireRoles"]
