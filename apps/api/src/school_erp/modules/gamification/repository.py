"""
Gamification Repository

Database operations for point totals and the activity log.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.modules.gamification.models import (
    ActionType,
    GamificationActivity,
    GamificationProfile,
)


async def get_profile(db: AsyncSession, user_id: UUID) -> GamificationProfile | None:
    """Get a user's gamification profile."""
    result = await db.execute(
        select(GamificationProfile).where(GamificationProfile.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def add_points(db: AsyncSession, user_id: UUID, points: int, at: datetime) -> None:
    """
    Add points to a user's total, creating the profile on first use.

    The increment is a single UPDATE so concurrent awards are not lost.
    Does not commit.
    """
    result = await db.execute(
        update(GamificationProfile)
        .where(GamificationProfile.user_id == user_id)
        .values(
            total_points=GamificationProfile.total_points + points,
            last_activity_at=at,
        )
    )
    if result.rowcount == 0:
        db.add(GamificationProfile(user_id=user_id, total_points=points, last_activity_at=at))


def add_activity(
    db: AsyncSession,
    *,
    user_id: UUID,
    action_type: ActionType,
    description: str,
    points: int,
    data: dict | None = None,
) -> GamificationActivity:
    """Append an activity log row. Does not commit."""
    activity = GamificationActivity(
        user_id=user_id,
        action_type=action_type,
        description=description,
        points=points,
        data=data,
    )
    db.add(activity)
    return activity


async def has_activity_since(
    db: AsyncSession,
    user_id: UUID,
    action_type: ActionType,
    since: datetime,
) -> bool:
    """Check whether the user already performed the action since a point in time."""
    count = await db.scalar(
        select(func.count())
        .select_from(GamificationActivity)
        .where(
            GamificationActivity.user_id == user_id,
            GamificationActivity.action_type == action_type,
            GamificationActivity.created_at >= since,
        )
    )
    return bool(count)


async def get_rank(db: AsyncSession, total_points: int) -> int:
    """1-based rank of a point total among all profiles."""
    higher = await db.scalar(
        select(func.count())
        .select_from(GamificationProfile)
        .where(GamificationProfile.total_points > total_points)
    )
    return (higher or 0) + 1


async def list_recent_activities(
    db: AsyncSession,
    user_id: UUID,
    limit: int = 10,
) -> list[GamificationActivity]:
    """Get a user's latest activities, newest first."""
    result = await db.execute(
        select(GamificationActivity)
        .where(GamificationActivity.user_id == user_id)
        .order_by(GamificationActivity.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
