"""
Shared Model Bases

Abstract base providing the UUID primary key and audit timestamps, plus the
tenant column mixin for tenant-scoped resources.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Uuid, func
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from school_erp.core.database import Base
from school_erp.modules.shared.utils import utcnow


def enum_type(enum_cls: type[enum.Enum], name: str) -> SAEnum:
    """Enum column type storing member values (not names)."""
    return SAEnum(enum_cls, name=name, values_callable=lambda e: [m.value for m in e])


class BaseModel(Base):
    """Abstract base model with id and audit timestamps."""

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )


class TenantScopedMixin:
    """
    Adds the owning tenant (school) column.

    NULL means the row is global and visible to every tenant.
    """

    @declared_attr
    def tenant_id(cls) -> Mapped[uuid.UUID | None]:  # noqa: N805
        return mapped_column(
            Uuid,
            ForeignKey("schools.id", ondelete="CASCADE"),
            nullable=True,
            index=True,
        )

    @declared_attr
    def created_by(cls) -> Mapped[uuid.UUID | None]:  # noqa: N805
        return mapped_column(Uuid, nullable=True)
