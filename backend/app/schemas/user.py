"""
Pydantic schemas for admin accounts.
"""

from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

from app.schemas.common import APIModel


class UserCreate(APIModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=8, max_length=72)


class UserLogin(APIModel):
    email: EmailStr
    password: str


class UserResponse(APIModel):
    id: int
    email: str
    first_name: str
    last_name: str
    full_name: str
    is_active: bool
    created_at: datetime


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
