"""
User schemas for the SerialTrack API.

This module contains Pydantic models for user management,
including user creation, update, and statistics.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, validator

from serialtrack.db.models.enums import UserRole


class UserBase(BaseModel):
    """Base user model with common fields."""

    email: EmailStr
    username: str = Field(..., min_length=1, max_length=100)
    full_name: Optional[str] = None
    role: UserRole = UserRole.USER
    is_active: Optional[bool] = True


class UserCreate(UserBase):
    """Schema for creating a user."""

    password: str = Field(..., description="Plain password")


class UserUpdate(BaseModel):
    """Schema for updating a user. Only provided fields change."""

    email: Optional[EmailStr] = None
    username: Optional[str] = None
    password: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class UserPasswordChange(BaseModel):
    """Schema for changing the current user's password."""

    current_password: str = Field(..., description="Current password")
    new_password: str = Field(..., description="New password")
    confirm_password: str = Field(..., description="Confirm new password")

    @validator("confirm_password")
    def passwords_match(cls, v, values):
        if "new_password" in values and v != values["new_password"]:
            raise ValueError("Passwords do not match")
        return v


class User(BaseModel):
    """Schema for user information."""

    id: int
    email: EmailStr
    username: str
    full_name: Optional[str] = None
    role: str
    is_active: bool
    is_admin: bool
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserStatistics(BaseModel):
    total_users: int
    admin_users: int
    regular_users: int
    recent_users: int
    active_users: int
