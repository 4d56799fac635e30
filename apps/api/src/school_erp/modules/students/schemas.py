"""Student structure and promotion schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ClassStructureUpsert(BaseModel):
    """
    Request body for PUT /resources/students/class-structure.

    Creates the class or replaces its settings. `school_id` is honoured only
    for super admins.
    """

    class_name: str = Field(..., min_length=1, max_length=50)
    sections: list[str] = Field(default_factory=list)
    is_graduation_class: bool = False
    max_students: int | None = Field(None, ge=1)
    sort_order: int = Field(0, ge=0)
    school_id: UUID | None = None

    @field_validator("sections")
    @classmethod
    def normalize_sections(cls, value: list[str]) -> list[str]:
        sections = []
        for section in value:
            section = section.strip()
            if section and section not in sections:
                sections.append(section)
        return sections


class ClassStructureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    class_name: str
    sections: list[str]
    is_graduation_class: bool
    max_students: int | None
    sort_order: int


class PromotionRequest(BaseModel):
    """Request body for POST /resources/students/promote."""

    student_ids: list[UUID] = Field(..., min_length=1, max_length=500)
    to_class: str = Field(..., min_length=1, max_length=50)
    to_section: str | None = Field(None, max_length=20)
    academic_year: str = Field(..., min_length=1, max_length=20)
    notes: str | None = Field(None, max_length=2000)
    school_id: UUID | None = None

    @field_validator("student_ids")
    @classmethod
    def dedupe(cls, value: list[UUID]) -> list[UUID]:
        return list(dict.fromkeys(value))


class PromotionResult(BaseModel):
    promoted_count: int
    graduated_count: int


class PromotionRecord(BaseModel):
    """A promotion with the student's and the promoter's names."""

    id: UUID
    student_id: UUID
    student_name: str
    from_class: str | None
    from_section: str | None
    to_class: str
    to_section: str | None
    academic_year: str
    is_graduation: bool
    notes: str | None
    promoted_by: UUID
    promoted_by_name: str | None
    promoted_at: datetime
