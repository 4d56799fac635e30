"""
Registration Models

A registration is a school's request against a shared resource (club,
event, training) or its compliance submission for an ISO clause, together
with its approval lifecycle.

At most one registration exists per (tenant, resource kind, resource); the
database unique constraint is the only arbiter of that rule, so concurrent
duplicate registrations resolve to exactly one winner.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from school_erp.modules.shared import BaseModel, enum_type


class RegistrationStatus(str, Enum):
    """
    Registration lifecycle.

    Flow:
        PENDING -> SUBMITTED -> APPROVED
                             -> REJECTED -> SUBMITTED (resubmission)
    """

    PENDING = "pending"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class Registration(BaseModel):
    """
    A tenant's registration for one resource.

    `evidence` is a list of `{name, file_url, file_type, size}` entries.
    `version` starts at 1 and is incremented on every resubmission after a
    rejection.
    """

    __tablename__ = "registrations"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id",
            "resource_kind",
            "resource_id",
            name="uq_registrations_tenant_resource",
        ),
        Index("ix_registrations_resource", "resource_kind", "resource_id"),
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    resource_kind: Mapped[str] = mapped_column(String(32), nullable=False)
    resource_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    status: Mapped[RegistrationStatus] = mapped_column(
        enum_type(RegistrationStatus, "registration_status"),
        nullable=False,
        default=RegistrationStatus.PENDING,
        index=True,
    )
    evidence: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    participant_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    registered_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    submitted_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return (
            f"<Registration(id={self.id}, {self.resource_kind}:{self.resource_id}, "
            f"tenant={self.tenant_id}, status={self.status.value})>"
        )
