"""
User Models

Database models for principals (users) and their roles.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from school_erp.modules.shared import BaseModel, enum_type

if TYPE_CHECKING:
    from school_erp.modules.schools.models import School


class UserRole(str, Enum):
    """
    User roles in the system.

    SUPER_ADMIN is the global role (no school). SCHOOL_ADMIN and
    ECA_COORDINATOR always belong to exactly one school.
    """

    SUPER_ADMIN = "super_admin"
    SCHOOL_ADMIN = "school_admin"
    ECA_COORDINATOR = "eca_coordinator"

    @property
    def is_global(self) -> bool:
        return self is UserRole.SUPER_ADMIN

    @classmethod
    def parse(cls, value: "str | UserRole") -> "UserRole":
        """
        Resolve a role from its canonical value or a legacy spelling.

        Raises:
            ValueError: If the value is not a known role
        """
        if isinstance(value, UserRole):
            return value
        normalized = value.strip().lower().replace("-", "_")
        role = _LEGACY_ROLE_ALIASES.get(normalized)
        if role is None:
            raise ValueError(f"Unknown role: {value!r}")
        return role


_LEGACY_ROLE_ALIASES: dict[str, UserRole] = {
    "super_admin": UserRole.SUPER_ADMIN,
    "superadmin": UserRole.SUPER_ADMIN,
    "school_admin": UserRole.SCHOOL_ADMIN,
    "school": UserRole.SCHOOL_ADMIN,
    "eca_coordinator": UserRole.ECA_COORDINATOR,
    "eca": UserRole.ECA_COORDINATOR,
}

TENANT_ROLES = frozenset({UserRole.SCHOOL_ADMIN, UserRole.ECA_COORDINATOR})


class User(BaseModel):
    """
    User model for authentication and authorization.

    Multi-tenant: school_id is required for every role except SUPER_ADMIN.
    Users are never hard-deleted; a super admin deactivates them instead.
    """

    __tablename__ = "users"

    # Multi-tenant: Link to school (NULL for super admins)
    school_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("schools.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Authentication fields
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)

    # Profile fields
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Role and permissions
    role: Mapped[UserRole] = mapped_column(
        enum_type(UserRole, "user_role"),
        nullable=False,
    )

    # Account status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    school: Mapped["School | None"] = relationship(
        "School",
        back_populates="users",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role.value})>"

    @property
    def full_name(self) -> str:
        """Return user's full name."""
        return f"{self.first_name} {self.last_name}".strip()
