from __future__ import annotations

from fastapi import APIRouter, Depends

from tablebase.api.fastapi.dependencies.auth import current_claims
from tablebase.api.fastapi.dependencies.project import get_project
from tablebase.api.fastapi.dependencies.services import get_user_service
from tablebase.db.registry import ProjectHandle
from tablebase.security.permissions import ROLE_ADMIN, RequireRoles
from tablebase.security.tokens import TokenClaims
from tablebase.users.schemas import AdminUserUpdateIn, MessageOut, UserOut, UserUpdateIn
from tablebase.users.service import UserService

ROUTER_PREFIX = "/users"
ROUTER_TAG = "users"

router = APIRouter()


# ---------------------------------------------------------------- self service


@router.get("/profile", response_model=UserOut)
async def get_profile(
    claims: TokenClaims = Depends(current_claims),
    project: ProjectHandle = Depends(get_project),
    users: UserService = Depends(get_user_service),
):
    return await users.get(project.name, claims.user_id)


@router.put("/update", response_model=MessageOut)
async def update_profile(
    payload: UserUpdateIn,
    claims: TokenClaims = Depends(current_claims),
    project: ProjectHandle = Depends(get_project),
    users: UserService = Depends(get_user_service),
):
    await users.update(project.name, claims.user_id, payload.model_dump(exclude_none=True))
    return MessageOut(message="User updated successfully")


@router.delete("/delete", response_model=MessageOut)
async def delete_profile(
    claims: TokenClaims = Depends(current_claims),
    project: ProjectHandle = Depends(get_project),
    users: UserService = Depends(get_user_service),
):
    await users.delete(project.name, claims.user_id)
    return MessageOut(message="User deleted successfully")


# ------------------------------------------------------------------ admin only


@router.get("", response_model=list[UserOut], dependencies=[RequireRoles(ROLE_ADMIN)])
async def list_users(
    project: ProjectHandle = Depends(get_project),
    users: UserService = Depends(get_user_service),
):
    return await users.list(project.name)


@router.get("/{user_id}", response_model=UserOut, dependencies=[RequireRoles(ROLE_ADMIN)])
async def get_user(
    user_id: str,
    project: ProjectHandle = Depends(get_project),
    users: UserService = Depends(get_user_service),
):
    return await users.get(project.name, user_id)


@router.put("/{user_id}", response_model=MessageOut, dependencies=[RequireRoles(ROLE_ADMIN)])
async def update_user(
    user_id: str,
    payload: AdminUserUpdateIn,
    project: ProjectHandle = Depends(get_project),
    users: UserService = Depends(get_user_service),
):
    await users.update(project.name, user_id, payload.model_dump(exclude_none=True), allow_role=True)
    return MessageOut(message="User updated successfully")


@router.delete("/{user_id}", response_model=MessageOut, dependencies=[RequireRoles(ROLE_ADMIN)])
async def delete_user(
    user_id: str,
    project: ProjectHandle = Depends(get_project),
    users: UserService = Depends(get_user_service),
):
    await users.delete(project.name, user_id)
    return MessageOut(message="User deleted successfully")
