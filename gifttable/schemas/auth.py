"""
Admin authentication schemas
"""

from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

__all__ = ["LoginRequest", "RegisterRequest", "ChangePasswordRequest", "AdminUserResponse"]

class LoginRequest(BaseModel):
    """Login with username or email"""
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)

class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)

class AdminUserResponse(BaseModel):
    id: int
    username: str
    email: str
    created_at: datetime

    class Config:
        from_attributes = True
