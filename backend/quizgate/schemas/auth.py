from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=6, max_length=72)
    full_name: str = Field(default="User", max_length=255)
    role: Literal["student", "teacher"] = "student"


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserOut(BaseModel):
    id: int
    email: str
    full_name: str
    role: str = "student"
    username: Optional[str] = None


class AuthResponse(BaseModel):
    token: TokenResponse
    user: UserOut
