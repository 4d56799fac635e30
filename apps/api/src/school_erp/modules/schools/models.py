"""
School Models

Database models for school (tenant) management.
Each school is a tenant in the multi-tenant architecture.
"""

from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from school_erp.modules.shared import BaseModel, enum_type

if TYPE_CHECKING:
    from school_erp.modules.users.models import User


class SchoolStatus(str, Enum):
    """Status of a school tenant."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    DEACTIVATED = "deactivated"


class School(BaseModel):
    """
    School tenant model.

    All tenant-scoped data (users, students, registrations, documents)
    references this model via tenant_id / school_id.
    """

    __tablename__ = "schools"

    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    logo_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Contact information
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Status
    status: Mapped[SchoolStatus] = mapped_column(
        enum_type(SchoolStatus, "school_status"),
        nullable=False,
        default=SchoolStatus.ACTIVE,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    users: Mapped[list["User"]] = relationship(
        "User",
        back_populates="school",
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"<School(id={self.id}, name={self.name}, status={self.status.value})>"
