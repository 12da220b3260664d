from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

Role = Literal["admin", "user"]


class RegisterIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    password: str = Field(..., min_length=1)
    remember_me: bool = Field(default=False, alias="rememberMe")


class UserUpdateIn(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=1)


class AdminUserUpdateIn(UserUpdateIn):
    role: Optional[Role] = None


class UserOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    email: str
    role: Role = "user"
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class TokenOut(BaseModel):
    token: str


class MessageOut(BaseModel):
    message: str
