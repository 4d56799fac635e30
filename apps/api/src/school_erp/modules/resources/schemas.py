"""
Resource Schemas

Create / update / response schemas per resource kind.

Create schemas accept an optional `tenant_id`; it is honoured only for
super admins. Tenant principals always create rows in their own school.
"""

from datetime import date, datetime
from typing import ClassVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from school_erp.modules.resources.models import (
    ClubStatus,
    DocumentStatus,
    EventStatus,
    IsoClauseStatus,
    StudentStatus,
    TrainingStatus,
)


class ResourceResponse(BaseModel):
    """Fields common to every resource kind."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID | None
    created_by: UUID | None
    created_at: datetime
    updated_at: datetime


class TenantAssignable(BaseModel):
    tenant_id: UUID | None = None


class PartialUpdate(BaseModel):
    """
    Base of update bodies. Omitted fields are left unchanged; fields listed
    in `required_fields` may be omitted but not cleared with an explicit null.
    """

    required_fields: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_cleared_required_fields(self):
        for name in self.required_fields:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


# ============================================
# Clubs
# ============================================


class ClubCreate(TenantAssignable):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    category: str | None = Field(None, max_length=100)
    lead_teacher: str | None = Field(None, max_length=200)
    logo_url: str | None = Field(None, max_length=500)
    status: ClubStatus = ClubStatus.OPEN


class ClubUpdate(PartialUpdate):
    required_fields = ("name", "status")

    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    category: str | None = Field(None, max_length=100)
    lead_teacher: str | None = Field(None, max_length=200)
    logo_url: str | None = Field(None, max_length=500)
    status: ClubStatus | None = None


class ClubResponse(ResourceResponse):
    name: str
    description: str | None
    category: str | None
    lead_teacher: str | None
    logo_url: str | None
    status: ClubStatus


# ============================================
# Events
# ============================================


class EventCreate(TenantAssignable):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    event_type: str | None = Field(None, max_length=100)
    starts_at: datetime
    ends_at: datetime | None = None
    location: str | None = Field(None, max_length=300)
    max_participants: int | None = Field(None, ge=1)
    registration_deadline: datetime | None = None
    status: EventStatus = EventStatus.DRAFT

    @model_validator(mode="after")
    def check_dates(self) -> "EventCreate":
        if self.ends_at and self.ends_at < self.starts_at:
            raise ValueError("ends_at must not be before starts_at")
        if self.registration_deadline and self.registration_deadline > self.starts_at:
            raise ValueError("registration_deadline must not be after starts_at")
        return self


class EventUpdate(PartialUpdate):
    required_fields = ("title", "starts_at", "status")

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    event_type: str | None = Field(None, max_length=100)
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    location: str | None = Field(None, max_length=300)
    max_participants: int | None = Field(None, ge=1)
    registration_deadline: datetime | None = None
    status: EventStatus | None = None


class EventResponse(ResourceResponse):
    title: str
    description: str | None
    event_type: str | None
    starts_at: datetime
    ends_at: datetime | None
    location: str | None
    max_participants: int | None
    registration_deadline: datetime | None
    status: EventStatus


# ============================================
# Trainings
# ============================================


class TrainingCreate(TenantAssignable):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    trainer: str | None = Field(None, max_length=200)
    starts_at: datetime
    duration_hours: float | None = Field(None, gt=0)
    location: str | None = Field(None, max_length=300)
    max_participants: int | None = Field(None, ge=1)
    status: TrainingStatus = TrainingStatus.UPCOMING


class TrainingUpdate(PartialUpdate):
    required_fields = ("title", "starts_at", "status")

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    trainer: str | None = Field(None, max_length=200)
    starts_at: datetime | None = None
    duration_hours: float | None = Field(None, gt=0)
    location: str | None = Field(None, max_length=300)
    max_participants: int | None = Field(None, ge=1)
    status: TrainingStatus | None = None


class TrainingResponse(ResourceResponse):
    title: str
    description: str | None
    trainer: str | None
    starts_at: datetime
    duration_hours: float | None
    location: str | None
    max_participants: int | None
    status: TrainingStatus


# ============================================
# ISO clauses
# ============================================


class IsoClauseCreate(TenantAssignable):
    number: str = Field(..., min_length=1, max_length=20)
    title: str = Field(..., min_length=1, max_length=300)
    description: str | None = Field(None, max_length=5000)
    requirements: list[str] = Field(default_factory=list)
    status: IsoClauseStatus = IsoClauseStatus.ACTIVE


class IsoClauseUpdate(PartialUpdate):
    required_fields = ("number", "title", "requirements", "status")

    number: str | None = Field(None, min_length=1, max_length=20)
    title: str | None = Field(None, min_length=1, max_length=300)
    description: str | None = Field(None, max_length=5000)
    requirements: list[str] | None = None
    status: IsoClauseStatus | None = None


class IsoClauseResponse(ResourceResponse):
    number: str
    title: str
    description: str | None
    requirements: list[str]
    status: IsoClauseStatus


# ============================================
# Documents (created through the upload endpoint)
# ============================================


class DocumentUpdate(PartialUpdate):
    required_fields = ("name", "version", "tags", "status")

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    category: str | None = Field(None, max_length=100)
    version: str | None = Field(None, min_length=1, max_length=20)
    tags: list[str] | None = None
    status: DocumentStatus | None = None


class DocumentResponse(ResourceResponse):
    name: str
    description: str | None
    category: str | None
    version: str
    tags: list[str]
    original_name: str
    mime_type: str
    file_size: int
    download_count: int
    status: DocumentStatus


# ============================================
# Document statistics
# ============================================


class DocumentCategoryStats(BaseModel):
    category: str | None
    count: int
    total_size: int


class DocumentStats(BaseModel):
    total: int
    total_downloads: int
    total_size: int
    categories: list[DocumentCategoryStats]
    recent: list[DocumentResponse]


# ============================================
# Students
# ============================================


class StudentCreate(TenantAssignable):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    gender: str | None = Field(None, max_length=20)
    date_of_birth: date | None = None
    roll_number: str | None = Field(None, max_length=50)
    class_name: str | None = Field(None, max_length=50)
    section: str | None = Field(None, max_length=20)
    guardian_name: str | None = Field(None, max_length=200)
    guardian_contact: str | None = Field(None, max_length=50)
    academic_year: str | None = Field(None, max_length=20)
    status: StudentStatus = StudentStatus.ACTIVE


class StudentUpdate(PartialUpdate):
    required_fields = ("first_name", "last_name", "status")

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    gender: str | None = Field(None, max_length=20)
    date_of_birth: date | None = None
    roll_number: str | None = Field(None, max_length=50)
    class_name: str | None = Field(None, max_length=50)
    section: str | None = Field(None, max_length=20)
    guardian_name: str | None = Field(None, max_length=200)
    guardian_contact: str | None = Field(None, max_length=50)
    academic_year: str | None = Field(None, max_length=20)
    status: StudentStatus | None = None


class StudentResponse(ResourceResponse):
    first_name: str
    last_name: str
    gender: str | None
    date_of_birth: date | None
    roll_number: str | None
    class_name: str | None
    section: str | None
    guardian_name: str | None
    guardian_contact: str | None
    academic_year: str | None
    graduation_date: date | None
    status: StudentStatus


# ============================================
# Training feedback
# ============================================


class TrainingFeedbackCreate(BaseModel):
    feedback: str = Field(..., min_length=1, max_length=5000)
    rating: int = Field(..., ge=1, le=5)


class TrainingFeedbackResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    training_id: UUID
    tenant_id: UUID
    user_id: UUID
    feedback: str
    rating: int
    created_at: datetime
