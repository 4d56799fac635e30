"""
User Schemas

Pydantic schemas for user management and the self-service profile.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from school_erp.modules.users.models import UserRole


def _parse_role(value):
    # Accept legacy spellings on input; only canonical values are stored
    if value is None or isinstance(value, UserRole):
        return value
    try:
        return UserRole.parse(str(value))
    except ValueError:
        return value


class UserCreate(BaseModel):
    """Request body for POST /users."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    role: UserRole
    school_id: UUID | None = None
    phone: str | None = Field(None, max_length=20)

    _normalize_role = field_validator("role", mode="before")(_parse_role)


class UserUpdate(BaseModel):
    """Request body for PUT /users/{id}. All fields optional."""

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    phone: str | None = Field(None, max_length=20)
    role: UserRole | None = None
    school_id: UUID | None = None

    _normalize_role = field_validator("role", mode="before")(_parse_role)


class PasswordReset(BaseModel):
    """Request body for POST /users/{id}/reset-password."""

    new_password: str = Field(..., min_length=8, max_length=128)


class UserResponse(BaseModel):
    """User as returned by the API. Never includes the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    first_name: str
    last_name: str
    full_name: str
    phone: str | None
    avatar_url: str | None
    role: UserRole
    school_id: UUID | None
    is_active: bool
    last_login_at: datetime | None
    created_at: datetime
    updated_at: datetime


class ProfileUpdate(BaseModel):
    """Request body for PUT /profile."""

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    phone: str | None = Field(None, max_length=20)
    avatar_url: str | None = Field(None, max_length=500)


class PasswordChange(BaseModel):
    """Request body for PUT /profile/password."""

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)
