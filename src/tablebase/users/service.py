from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

from tablebase.db.registry import USERS_TABLE, ProjectRegistry
from tablebase.db.store import Document, FileCollection
from tablebase.exceptions import Conflict, NotFound, Unauthorized, ValidationError
from tablebase.security.passwords import hash_password, validate_password, verify_password
from tablebase.security.permissions import ROLE_ADMIN, ROLE_USER, ROLES
from tablebase.security.tokens import TokenClaims, issue_token, token_ttl

logger = logging.getLogger(__name__)

USER_NOT_FOUND = "User not found"
INVALID_CREDENTIALS = "Invalid credentials"


def public_user(doc: Mapping[str, Any]) -> Document:
    return {k: v for k, v in doc.items() if k != "password"}


class UserService:
    """Accounts stored in each project's ``_users`` collection."""

    def __init__(self, registry: ProjectRegistry):
        self.registry = registry
        self._register_locks: dict[str, asyncio.Lock] = {}

    async def _users(self, project: str) -> FileCollection:
        collection = await self.registry.get_collection(project, USERS_TABLE)
        await collection.ensure_unique("email")
        return collection

    async def _hashed(self, password: str) -> str:
        validate_password(password)
        return await asyncio.to_thread(hash_password, password)

    async def register(self, project: str, email: str, password: str) -> Document:
        """Create an account; the first account of a project is its admin."""
        hashed = await self._hashed(password)
        users = await self._users(project)
        lock = self._register_locks.setdefault(project, asyncio.Lock())
        async with lock:
            if await users.find_one({"email": email}) is not None:
                raise Conflict("Email already registered")
            role = ROLE_ADMIN if await users.count() == 0 else ROLE_USER
            doc = await users.insert({"email": email, "password": hashed, "role": role})
        logger.info("Registered user %s (%s)", doc["_id"], role, extra={"project": project})
        return public_user(doc)

    async def login(self, project: str, email: str, password: str, *, remember: bool = False) -> str:
        users = await self._users(project)
        user = await users.find_one({"email": email})
        ok = user is not None and await asyncio.to_thread(verify_password, password, user.get("password"))
        if not ok:
            raise Unauthorized(INVALID_CREDENTIALS)
        claims = TokenClaims(user_id=user["_id"], email=user["email"], role=user.get("role") or ROLE_USER)
        secret = await asyncio.to_thread(self.registry.get_secret, project)
        return issue_token(secret, claims, token_ttl(remember))

    async def get(self, project: str, user_id: str) -> Document:
        users = await self._users(project)
        user = await users.get(user_id)
        if user is None:
            raise NotFound(USER_NOT_FOUND)
        return public_user(user)

    async def list(self, project: str) -> list[Document]:
        users = await self._users(project)
        return [public_user(u) for u in await users.find(sort_field="createdAt")]

    async def update(
        self,
        project: str,
        user_id: str,
        changes: Mapping[str, Any],
        *,
        allow_role: bool = False,
    ) -> Document:
        """Apply ``email``/``password`` (and ``role`` when allowed) changes."""
        users = await self._users(project)
        current = await users.get(user_id)
        if current is None:
            raise NotFound(USER_NOT_FOUND)

        updated = dict(current)
        if changes.get("email") is not None:
            updated["email"] = changes["email"]
        if changes.get("password") is not None:
            updated["password"] = await self._hashed(changes["password"])
        if changes.get("role") is not None:
            if not allow_role:
                raise ValidationError("Role can only be changed by an admin")
            if changes["role"] not in ROLES:
                raise ValidationError(f"Unknown role '{changes['role']}'")
            updated["role"] = changes["role"]

        if not await users.update_one(user_id, updated):
            raise NotFound(USER_NOT_FOUND)
        logger.info("Updated user %s", user_id, extra={"project": project})
        return public_user(await users.get(user_id) or updated)

    async def delete(self, project: str, user_id: str) -> None:
        users = await self._users(project)
        if not await users.remove_one(user_id):
            raise NotFound(USER_NOT_FOUND)
        logger.info("Deleted user %s", user_id, extra={"project": project})


__all__ = ["UserService", "public_user", "USER_NOT_FOUND", "INVALID_CREDENTIALS"]
