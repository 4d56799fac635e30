"""
Resource Models

Tenant-scoped resources. Every table carries a nullable `tenant_id`: NULL
means the row is global and visible to every school. Students are the
exception and always belong to a school.
"""

import uuid
from datetime import date, datetime
from enum import Enum

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from school_erp.modules.shared import BaseModel, TenantScopedMixin, enum_type


class ClubStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    COMING_SOON = "coming_soon"


class EventStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class TrainingStatus(str, Enum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class IsoClauseStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class DocumentStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class StudentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    GRADUATED = "graduated"
    TRANSFERRED = "transferred"


class Club(BaseModel, TenantScopedMixin):
    """Extra-curricular club schools can join."""

    __tablename__ = "clubs"

    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    lead_teacher: Mapped[str | None] = mapped_column(String(200), nullable=True)
    logo_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    status: Mapped[ClubStatus] = mapped_column(
        enum_type(ClubStatus, "club_status"),
        nullable=False,
        default=ClubStatus.OPEN,
    )

    @property
    def display_name(self) -> str:
        return self.name


class Event(BaseModel, TenantScopedMixin):
    """Scheduled event schools can register for."""

    __tablename__ = "events"

    title: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    event_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ends_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    location: Mapped[str | None] = mapped_column(String(300), nullable=True)
    max_participants: Mapped[int | None] = mapped_column(Integer, nullable=True)
    registration_deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    status: Mapped[EventStatus] = mapped_column(
        enum_type(EventStatus, "event_status"),
        nullable=False,
        default=EventStatus.DRAFT,
    )

    @property
    def display_name(self) -> str:
        return self.title


class Training(BaseModel, TenantScopedMixin):
    """Teacher training session with limited capacity."""

    __tablename__ = "trainings"

    title: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    trainer: Mapped[str | None] = mapped_column(String(200), nullable=True)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    location: Mapped[str | None] = mapped_column(String(300), nullable=True)
    max_participants: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[TrainingStatus] = mapped_column(
        enum_type(TrainingStatus, "training_status"),
        nullable=False,
        default=TrainingStatus.UPCOMING,
    )

    @property
    def display_name(self) -> str:
        return self.title


class IsoClause(BaseModel, TenantScopedMixin):
    """ISO 21001 clause schools submit compliance evidence against."""

    __tablename__ = "iso_clauses"
    __table_args__ = (
        UniqueConstraint("tenant_id", "number", name="uq_iso_clauses_tenant_number"),
        # NULLs are distinct in the constraint above, so global numbers need their own index
        Index(
            "uq_iso_clauses_global_number",
            "number",
            unique=True,
            postgresql_where=text("tenant_id IS NULL"),
            sqlite_where=text("tenant_id IS NULL"),
        ),
    )

    number: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    requirements: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[IsoClauseStatus] = mapped_column(
        enum_type(IsoClauseStatus, "iso_clause_status"),
        nullable=False,
        default=IsoClauseStatus.ACTIVE,
    )

    @property
    def display_name(self) -> str:
        return f"{self.number} {self.title}"


class Document(BaseModel, TenantScopedMixin):
    """Uploaded document; the bytes live under UPLOAD_DIR/documents."""

    __tablename__ = "documents"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    version: Mapped[str] = mapped_column(String(20), nullable=False, default="1.0")
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    stored_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(150), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    download_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[DocumentStatus] = mapped_column(
        enum_type(DocumentStatus, "document_status"),
        nullable=False,
        default=DocumentStatus.ACTIVE,
    )

    @property
    def display_name(self) -> str:
        return self.name


class Student(BaseModel, TenantScopedMixin):
    """Student record. Always owned by a school."""

    __tablename__ = "students"

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    gender: Mapped[str | None] = mapped_column(String(20), nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    roll_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    class_name: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    section: Mapped[str | None] = mapped_column(String(20), nullable=True)
    guardian_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    guardian_contact: Mapped[str | None] = mapped_column(String(50), nullable=True)
    academic_year: Mapped[str | None] = mapped_column(String(20), nullable=True)
    graduation_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[StudentStatus] = mapped_column(
        enum_type(StudentStatus, "student_status"),
        nullable=False,
        default=StudentStatus.ACTIVE,
    )

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class TrainingFeedback(BaseModel):
    """A school principal's rating of a training. One per user and training."""

    __tablename__ = "training_feedback"
    __table_args__ = (
        UniqueConstraint("training_id", "user_id", name="uq_training_feedback_user"),
    )

    training_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("trainings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    feedback: Mapped[str] = mapped_column(Text, nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
