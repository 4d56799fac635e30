"""Gamification schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from school_erp.modules.gamification.models import ActionType


class ActivityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    action_type: ActionType
    description: str
    points: int
    created_at: datetime


class GamificationStats(BaseModel):
    """Point total, level progress and rank of a user."""

    total_points: int
    level: int
    level_progress: float
    points_to_next_level: int
    rank: int
    recent_activities: list[ActivityResponse]
