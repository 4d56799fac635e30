"""Notification schemas."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from school_erp.modules.notifications.models import NotificationCategory, NotificationPriority


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    message: str
    category: NotificationCategory
    priority: NotificationPriority
    data: dict[str, Any] | None
    action_url: str | None
    read: bool
    read_at: datetime | None
    created_at: datetime
    expires_at: datetime | None


class UnreadCount(BaseModel):
    unread: int


class NotificationTarget(str, Enum):
    USER = "user"
    SCHOOL = "school"
    ALL = "all"


class NotificationSend(BaseModel):
    """
    Request body for POST /notifications/send.

    `user_id` is required for target "user", `school_id` for target "school"
    (delivered to that school's active admins). Target "all" reaches every
    active user.
    """

    target: NotificationTarget
    user_id: UUID | None = None
    school_id: UUID | None = None
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=5000)
    category: NotificationCategory = NotificationCategory.SYSTEM
    priority: NotificationPriority = NotificationPriority.MEDIUM
    action_url: str | None = Field(None, max_length=500)

    @model_validator(mode="after")
    def check_target(self) -> "NotificationSend":
        if self.target == NotificationTarget.USER and self.user_id is None:
            raise ValueError("user_id is required when target is 'user'")
        if self.target == NotificationTarget.SCHOOL and self.school_id is None:
            raise ValueError("school_id is required when target is 'school'")
        return self


class SendResult(BaseModel):
    recipients: int
