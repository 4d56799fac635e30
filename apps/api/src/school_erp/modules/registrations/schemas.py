"""Registration schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from school_erp.modules.registrations.models import RegistrationStatus


class EvidenceItem(BaseModel):
    """Uploaded evidence file attached to a submission."""

    name: str = Field(..., min_length=1, max_length=255)
    file_url: str = Field(..., min_length=1, max_length=500)
    file_type: str = Field(..., min_length=1, max_length=150)
    size: int = Field(..., ge=0)


class RegistrationCreate(BaseModel):
    """
    Request body for POST /resources/{kind}/{id}/register.

    Attaching evidence submits the registration immediately.
    """

    evidence: list[EvidenceItem] = Field(default_factory=list)
    participant_count: int | None = Field(None, ge=1)
    notes: str | None = Field(None, max_length=2000)


class SubmissionCreate(BaseModel):
    """Request body for POST …/registrations/{reg_id}/submit."""

    evidence: list[EvidenceItem] = Field(default_factory=list)


class ReviewDecision(BaseModel):
    """Request body for PUT …/registrations/{reg_id}."""

    status: RegistrationStatus
    comments: str | None = Field(None, max_length=2000)

    @field_validator("status")
    @classmethod
    def check_decision(cls, value: RegistrationStatus) -> RegistrationStatus:
        if value not in (RegistrationStatus.APPROVED, RegistrationStatus.REJECTED):
            raise ValueError("status must be 'approved' or 'rejected'")
        return value


class RegistrationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    resource_kind: str
    resource_id: UUID
    status: RegistrationStatus
    evidence: list[EvidenceItem]
    participant_count: int | None
    notes: str | None
    registered_by: UUID
    submitted_by: UUID | None
    submitted_at: datetime | None
    reviewed_by: UUID | None
    reviewed_at: datetime | None
    comments: str | None
    version: int
    created_at: datetime
    updated_at: datetime
