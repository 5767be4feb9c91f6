"""
User Model - Registration, login and profile payloads.
"""

from typing import Optional, List
from pydantic import BaseModel, EmailStr, Field


class UserCreate(BaseModel):
    """Registration payload."""
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserLogin(BaseModel):
    """Login payload."""
    email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    """Profile update - all fields optional."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    avatar: Optional[str] = None
    bio: Optional[str] = Field(default=None, max_length=2000)
    profession: Optional[str] = None
    expertise: Optional[List[str]] = None
    location: Optional[str] = None


class TokenData(BaseModel):
    """Token payload data."""
    user_id: Optional[str] = None
    email: Optional[str] = None
