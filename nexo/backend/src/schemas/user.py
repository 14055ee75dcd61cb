"""Pydantic schemas for users."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..core.enums import USER_ROLE_LABELS, UserRole
from .common import coerce_label


class UserRead(BaseModel):
    """Public user representation."""

    id: int
    display_id: str
    email: str
    name: str
    role: str
    department: str | None = None
    avatar_url: str | None = None
    is_active: bool
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class UserCreate(BaseModel):
    """Schema for registering a user."""

    email: EmailStr
    name: str = Field(min_length=2, max_length=255)
    role: UserRole = UserRole.USER
    department: str | None = Field(default=None, max_length=100)
    auth0_sub: str | None = None

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("role", mode="before")
    @classmethod
    def _role_from_label(cls, value):
        if value is None or value == "":
            return UserRole.USER
        return coerce_label(USER_ROLE_LABELS, value)


class UserUpdate(BaseModel):
    """Name and role changes made by an administrator."""

    name: str = Field(min_length=2, max_length=255)
    role: UserRole

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("role", mode="before")
    @classmethod
    def _role_from_label(cls, value):
        return coerce_label(USER_ROLE_LABELS, value)


__all__ = ["UserCreate", "UserRead", "UserUpdate"]
