"""
Student Structure Models

A school's class structure (classes, their sections and which class
graduates) and the promotion history of its students.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from school_erp.modules.shared import BaseModel, TenantScopedMixin


class ClassStructure(BaseModel, TenantScopedMixin):
    """
    One class of a school, e.g. "Grade 6" with sections A and B.

    Students promoted out of a graduation class are marked graduated.
    """

    __tablename__ = "class_structures"
    __table_args__ = (
        UniqueConstraint("tenant_id", "class_name", name="uq_class_structures_tenant_class"),
    )

    class_name: Mapped[str] = mapped_column(String(50), nullable=False)
    sections: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_graduation_class: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    max_students: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<ClassStructure(tenant={self.tenant_id}, class={self.class_name})>"


class StudentPromotion(BaseModel):
    """A student's move from one class to the next, kept as history."""

    __tablename__ = "student_promotions"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    from_class: Mapped[str | None] = mapped_column(String(50), nullable=True)
    from_section: Mapped[str | None] = mapped_column(String(20), nullable=True)
    to_class: Mapped[str] = mapped_column(String(50), nullable=False)
    to_section: Mapped[str | None] = mapped_column(String(20), nullable=True)
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    is_graduation: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    promoted_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    promoted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
