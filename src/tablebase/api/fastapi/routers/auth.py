from __future__ import annotations

from fastapi import APIRouter, Depends, status

from tablebase.api.fastapi.dependencies.project import get_project
from tablebase.api.fastapi.dependencies.services import get_user_service
from tablebase.db.registry import ProjectHandle
from tablebase.users.schemas import LoginIn, RegisterIn, TokenOut, UserOut
from tablebase.users.service import UserService

ROUTER_PREFIX = "/auth"
ROUTER_TAG = "auth"

router = APIRouter()


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=UserOut)
async def register(
    payload: RegisterIn,
    project: ProjectHandle = Depends(get_project),
    users: UserService = Depends(get_user_service),
):
    return await users.register(project.name, str(payload.email), payload.password)


@router.post("/login", response_model=TokenOut)
async def login(
    payload: LoginIn,
    project: ProjectHandle = Depends(get_project),
    users: UserService = Depends(get_user_service),
):
    token = await users.login(
        project.name, str(payload.email), payload.password, remember=payload.remember_me
    )
    return TokenOut(token=token)
