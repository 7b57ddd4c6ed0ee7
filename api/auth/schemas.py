"""
Auth API schemas (request/response models).
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=1, max_length=72)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=72)


class AccountResponse(BaseModel):
    id: int
    email: str
    created_at: datetime | None = None


class SessionResponse(BaseModel):
    client_id: str
    client_secret: str
    token_type: str = "bearer"
    expires_at: datetime
