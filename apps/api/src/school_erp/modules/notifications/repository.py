"""
Notification Repository

Database operations for notifications. Every per-user operation carries the
owner in its WHERE clause, so another user's notification is never touched.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.modules.notifications.models import Notification


def add(db: AsyncSession, **fields) -> Notification:
    """Stage a new notification. Does not commit."""
    notification = Notification(**fields)
    db.add(notification)
    return notification


async def list_for_user(
    db: AsyncSession,
    user_id: UUID,
    *,
    unread_only: bool = False,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[Notification], int]:
    """
    List a user's notifications, newest first.

    Returns:
        Tuple of (notifications, total count)
    """
    stmt = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        stmt = stmt.where(Notification.read.is_(False))

    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
    result = await db.execute(
        stmt.order_by(Notification.created_at.desc()).offset(skip).limit(limit)
    )
    return list(result.scalars().all()), total or 0


async def count_unread(db: AsyncSession, user_id: UUID) -> int:
    """Count a user's unread notifications."""
    count = await db.scalar(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
    )
    return count or 0


async def mark_read(db: AsyncSession, user_id: UUID, notification_id: UUID, at: datetime) -> int:
    """Mark one of the user's notifications as read. Returns rows matched."""
    result = await db.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.user_id == user_id)
        .values(read=True, read_at=func.coalesce(Notification.read_at, at))
    )
    await db.commit()
    return result.rowcount


async def mark_all_read(db: AsyncSession, user_id: UUID, at: datetime) -> int:
    """Mark all of the user's unread notifications as read. Returns rows updated."""
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
        .values(read=True, read_at=at)
    )
    await db.commit()
    return result.rowcount


async def delete_for_user(db: AsyncSession, user_id: UUID, notification_id: UUID) -> int:
    """Delete one of the user's notifications. Returns rows deleted."""
    result = await db.execute(
        delete(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    )
    await db.commit()
    return result.rowcount


async def delete_expired(db: AsyncSession, now: datetime) -> int:
    """Delete notifications past their expiry. Returns rows deleted."""
    result = await db.execute(
        delete(Notification).where(
            Notification.expires_at.is_not(None),
            Notification.expires_at < now,
        )
    )
    await db.commit()
    return result.rowcount
