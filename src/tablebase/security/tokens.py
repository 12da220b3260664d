from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional

import jwt

from tablebase.auth.settings import get_auth_settings
from tablebase.exceptions import TokenExpired, TokenInvalid

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ["exp", "iat", "userId", "email"]


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    email: str
    role: str = "user"
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    def to_payload(self) -> dict[str, Any]:
        return {"userId": self.user_id, "email": self.email, "role": self.role}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TokenClaims":
        return cls(
            user_id=str(payload["userId"]),
            email=str(payload["email"]),
            role=str(payload.get("role") or "user"),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )


def token_ttl(remember: bool = False) -> timedelta:
    s = get_auth_settings()
    return timedelta(seconds=s.remember_ttl_seconds if remember else s.token_ttl_seconds)


def issue_token(
    secret: bytes | str,
    claims: TokenClaims,
    ttl: Optional[timedelta] = None,
    *,
    now: Optional[datetime] = None,
) -> str:
    """Sign ``claims`` with a project's secret; expires after ``ttl`` (default one hour)."""
    issued = now or datetime.now(timezone.utc)
    expires = issued + (ttl if ttl is not None else token_ttl())
    payload = {
        **claims.to_payload(),
        "iat": int(issued.timestamp()),
        "exp": int(expires.timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=get_auth_settings().jwt_algorithm)


def verify_token(secret: bytes | str, token: str) -> TokenClaims:
    algorithm = get_auth_settings().jwt_algorithm
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenExpired("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        logger.debug("Rejected token: %s", exc)
        raise TokenInvalid("Invalid token") from exc
    return TokenClaims.from_payload(payload)


__all__ = ["TokenClaims", "issue_token", "verify_token", "token_ttl"]
