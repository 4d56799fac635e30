"""
Notification Models

Per-user notifications produced by workflow transitions and broadcasts.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from school_erp.modules.shared import BaseModel, enum_type


class NotificationCategory(str, Enum):
    SCHOOL = "school"
    CLUB = "club"
    EVENT = "event"
    TRAINING = "training"
    ISO = "iso"
    DOCUMENT = "document"
    STUDENT = "student"
    SYSTEM = "system"
    SECURITY = "security"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Notification(BaseModel):
    """
    A notification owned by one user.

    Only the owner can read, mark or delete it. Rows past `expires_at` are
    removed by the hourly cleanup job.
    """

    __tablename__ = "notifications"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[NotificationCategory] = mapped_column(
        enum_type(NotificationCategory, "notification_category"),
        nullable=False,
    )
    priority: Mapped[NotificationPriority] = mapped_column(
        enum_type(NotificationPriority, "notification_priority"),
        nullable=False,
        default=NotificationPriority.MEDIUM,
    )
    data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    action_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, user_id={self.user_id}, category={self.category.value})>"
