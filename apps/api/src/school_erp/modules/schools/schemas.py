"""School schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from school_erp.modules.schools.models import SchoolStatus


class SchoolCreate(BaseModel):
    """Create school request."""

    name: str = Field(..., min_length=2, max_length=200)
    logo_url: str | None = Field(None, max_length=500)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=20)
    address: str | None = Field(None, max_length=1000)


class SchoolUpdate(BaseModel):
    """Partial school update request."""

    name: str | None = Field(None, min_length=2, max_length=200)
    logo_url: str | None = Field(None, max_length=500)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=20)
    address: str | None = Field(None, max_length=1000)


class SchoolResponse(BaseModel):
    """School representation."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    logo_url: str | None
    email: str | None
    phone: str | None
    address: str | None
    status: SchoolStatus
    is_active: bool
    created_at: datetime
    updated_at: datetime
