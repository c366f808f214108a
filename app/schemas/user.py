# ===================================
# app/schemas/user.py
# ===================================
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.models.user import UserRole


class UserBase(BaseModel):
    email: EmailStr
    handle: str = Field(min_length=1, max_length=50)


class UserCreate(UserBase):
    password: str = Field(min_length=8, max_length=72)


class User(BaseModel):
    id: UUID
    email: EmailStr
    handle: str
    role: UserRole
    is_active: bool
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: User


class AuthResponse(BaseModel):
    success: bool = True
    message: str
    data: Token


class UserResponse(BaseModel):
    success: bool = True
    data: User
