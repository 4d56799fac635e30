"""
Gamification Service

Records point-earning actions and computes level/rank statistics.

Awarding points is a side channel: `record_action` never raises. A failure
is logged and rolled back, and the triggering operation is unaffected.
"""

import logging
from datetime import datetime, time
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.modules.gamification import repository
from school_erp.modules.gamification.models import (
    ACTION_DESCRIPTIONS,
    ACTION_POINTS,
    POINTS_PER_LEVEL,
    ActionType,
)
from school_erp.modules.gamification.schemas import ActivityResponse, GamificationStats
from school_erp.modules.shared import utcnow

logger = logging.getLogger(__name__)

# Actions that earn points at most once per UTC day
_ONCE_PER_DAY = frozenset({ActionType.DAILY_LOGIN})


def level_for(total_points: int) -> int:
    return total_points // POINTS_PER_LEVEL + 1


async def record_action(
    db: AsyncSession,
    user_id: UUID,
    action_type: ActionType,
    data: dict | None = None,
) -> int:
    """
    Award the points of an action to a user.

    Args:
        db: Database session
        user_id: User earning the points
        action_type: Action performed
        data: Optional context stored with the activity (e.g. resource id)

    Returns:
        Points awarded (0 when skipped or on failure)
    """
    now = utcnow()
    points = ACTION_POINTS[action_type]

    try:
        if action_type in _ONCE_PER_DAY:
            start_of_day = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
            if await repository.has_activity_since(db, user_id, action_type, start_of_day):
                return 0

        await repository.add_points(db, user_id, points, now)
        repository.add_activity(
            db,
            user_id=user_id,
            action_type=action_type,
            description=ACTION_DESCRIPTIONS[action_type],
            points=points,
            data=data,
        )
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to record {action_type.value} for user {user_id}: {e}")
        return 0

    logger.debug(f"Awarded {points} points to user {user_id} for {action_type.value}")
    return points


async def get_stats(db: AsyncSession, user_id: UUID) -> GamificationStats:
    """
    Compute a user's gamification statistics.

    Level is `total // 1000 + 1`; progress is the percentage through the
    current level.
    """
    profile = await repository.get_profile(db, user_id)
    total = profile.total_points if profile else 0
    into_level = total % POINTS_PER_LEVEL

    activities = await repository.list_recent_activities(db, user_id, limit=10)

    return GamificationStats(
        total_points=total,
        level=level_for(total),
        level_progress=round(into_level / POINTS_PER_LEVEL * 100, 2),
        points_to_next_level=POINTS_PER_LEVEL - into_level,
        rank=await repository.get_rank(db, total),
        recent_activities=[ActivityResponse.model_validate(a) for a in activities],
    )
