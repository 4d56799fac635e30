"""
Gamification Models

Point totals per user and the activity log of point-earning actions.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from school_erp.modules.shared import BaseModel, enum_type


class ActionType(str, Enum):
    """Point-earning actions."""

    CLUB_REGISTER = "club_register"
    EVENT_REGISTER = "event_register"
    TRAINING_REGISTER = "training_register"
    ISO_SUBMISSION = "iso_submission"
    DOCUMENT_DOWNLOAD = "document_download"
    STUDENT_ADD = "student_add"
    PROFILE_UPDATE = "profile_update"
    DAILY_LOGIN = "daily_login"


ACTION_POINTS: dict[ActionType, int] = {
    ActionType.CLUB_REGISTER: 30,
    ActionType.EVENT_REGISTER: 15,
    ActionType.TRAINING_REGISTER: 15,
    ActionType.ISO_SUBMISSION: 40,
    ActionType.DOCUMENT_DOWNLOAD: 5,
    ActionType.STUDENT_ADD: 25,
    ActionType.PROFILE_UPDATE: 10,
    ActionType.DAILY_LOGIN: 10,
}

ACTION_DESCRIPTIONS: dict[ActionType, str] = {
    ActionType.CLUB_REGISTER: "Registered for a club",
    ActionType.EVENT_REGISTER: "Registered for an event",
    ActionType.TRAINING_REGISTER: "Registered for a training",
    ActionType.ISO_SUBMISSION: "Submitted ISO evidence",
    ActionType.DOCUMENT_DOWNLOAD: "Downloaded a document",
    ActionType.STUDENT_ADD: "Added a student",
    ActionType.PROFILE_UPDATE: "Updated profile",
    ActionType.DAILY_LOGIN: "Daily login",
}

POINTS_PER_LEVEL = 1000


class GamificationProfile(BaseModel):
    """Running point total of a user."""

    __tablename__ = "gamification_profiles"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    total_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_activity_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class GamificationActivity(BaseModel):
    """One point-earning action."""

    __tablename__ = "gamification_activities"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action_type: Mapped[ActionType] = mapped_column(
        enum_type(ActionType, "gamification_action"),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
