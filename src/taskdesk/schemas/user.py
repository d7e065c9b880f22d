"""Pydantic schemas for signup and signin."""

from typing import Literal

from pydantic import BaseModel, EmailStr, Field


class SignupRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Literal["user", "admin"] = "user"


class SigninRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class SigninResponse(BaseModel):
    success: bool = True
    message: str
    token: str
