"""Messaging schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from school_erp.modules.users.models import UserRole


class Attachment(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    file_url: str = Field(..., min_length=1, max_length=500)
    file_type: str = Field(..., min_length=1, max_length=150)
    size: int = Field(..., ge=0)


class ConversationCreate(BaseModel):
    """Request body for POST /messages/conversations. The caller joins automatically."""

    participant_ids: list[UUID] = Field(..., min_length=1, max_length=20)
    title: str | None = Field(None, max_length=200)

    @field_validator("participant_ids")
    @classmethod
    def dedupe(cls, value: list[UUID]) -> list[UUID]:
        return list(dict.fromkeys(value))


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    attachments: list[Attachment] = Field(default_factory=list, max_length=10)

    @field_validator("content")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content cannot be blank")
        return value


class Contact(BaseModel):
    """A user the caller may message."""

    id: UUID
    name: str
    email: str
    role: UserRole
    school_id: UUID | None
    school_name: str | None


class ParticipantResponse(BaseModel):
    user_id: UUID
    name: str
    role: UserRole
    school_id: UUID | None
    is_active: bool
    joined_at: datetime


class ConversationResponse(BaseModel):
    id: UUID
    title: str | None
    participants: list[ParticipantResponse]
    last_message: str | None
    last_message_at: datetime | None
    unread_count: int
    created_by: UUID
    created_at: datetime
    updated_at: datetime


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    conversation_id: UUID
    sender_id: UUID
    content: str
    attachments: list[Attachment]
    created_at: datetime
