# File: api/models/session_models.py
from pydantic import BaseModel
from typing import Any, Optional


class LoginRequest(BaseModel):
    code: Optional[Any] = None


class UserResponse(BaseModel):
    id: int
    orcid: str
    name: Optional[str] = None
    email: Optional[str] = None
    institution: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class LoginResponse(BaseModel):
    user: UserResponse
    token: str
