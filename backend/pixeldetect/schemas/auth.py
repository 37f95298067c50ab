from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field


class RequestCodeBody(BaseModel):
    email: EmailStr


class RequestCodeResponse(BaseModel):
    ok: bool = True
    expires_in: int


class VerifyCodeBody(BaseModel):
    email: EmailStr
    code: str = Field(..., min_length=6, max_length=6, pattern=r"^\d{6}$")


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class MeResponse(BaseModel):
    user_id: str
    email: str
