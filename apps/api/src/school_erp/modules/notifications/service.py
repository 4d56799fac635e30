"""
Notification Service

Two sides:

1. Emitting (side channel). `emit`, `emit_many` and `emit_to_school_admins`
   run after the triggering transition has committed and use their own
   commit. They never raise: a failure is logged, rolled back and not
   retried, and the triggering operation is unaffected.

2. Consuming. Listing, counting, marking and deleting are scoped to the
   owner; another user's notification is reported as not found.
"""

import logging
from datetime import timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.core.config import settings
from school_erp.core.errors import NotFoundError, ValidationError
from school_erp.modules.notifications import repository
from school_erp.modules.notifications.models import (
    Notification,
    NotificationCategory,
    NotificationPriority,
)
from school_erp.modules.notifications.schemas import NotificationSend, NotificationTarget
from school_erp.modules.schools.repository import SchoolRepository
from school_erp.modules.shared import utcnow
from school_erp.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


def _stage(
    db: AsyncSession,
    user_ids: list[UUID],
    title: str,
    message: str,
    category: NotificationCategory,
    priority: NotificationPriority,
    data: dict | None,
    action_url: str | None,
) -> None:
    expires_at = utcnow() + timedelta(days=settings.notification_ttl_days)
    for user_id in user_ids:
        repository.add(
            db,
            user_id=user_id,
            title=title,
            message=message,
            category=category,
            priority=priority,
            data=data,
            action_url=action_url,
            expires_at=expires_at,
        )


async def emit_many(
    db: AsyncSession,
    user_ids: list[UUID],
    title: str,
    message: str,
    category: NotificationCategory,
    *,
    priority: NotificationPriority = NotificationPriority.MEDIUM,
    data: dict | None = None,
    action_url: str | None = None,
) -> int:
    """
    Best-effort: notify several users in one commit.

    Returns:
        Number of notifications stored (0 on failure)
    """
    recipients = list(dict.fromkeys(user_ids))
    if not recipients:
        return 0

    try:
        _stage(db, recipients, title, message, category, priority, data, action_url)
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to emit '{title}' notification to {len(recipients)} user(s): {e}")
        return 0

    logger.debug(f"Emitted '{title}' notification to {len(recipients)} user(s)")
    return len(recipients)


async def emit(
    db: AsyncSession,
    user_id: UUID,
    title: str,
    message: str,
    category: NotificationCategory,
    *,
    priority: NotificationPriority = NotificationPriority.MEDIUM,
    data: dict | None = None,
    action_url: str | None = None,
) -> bool:
    """Best-effort: notify one user. Returns whether it was stored."""
    stored = await emit_many(
        db,
        [user_id],
        title,
        message,
        category,
        priority=priority,
        data=data,
        action_url=action_url,
    )
    return stored == 1


async def emit_to_school_admins(
    db: AsyncSession,
    tenant_id: UUID,
    title: str,
    message: str,
    category: NotificationCategory,
    *,
    priority: NotificationPriority = NotificationPriority.MEDIUM,
    data: dict | None = None,
    action_url: str | None = None,
    extra_user_ids: list[UUID] | None = None,
) -> int:
    """
    Best-effort: notify the active school admins of a tenant.

    `extra_user_ids` are added to the recipients (duplicates removed).
    """
    try:
        admins = await UserRepository.list_school_admins(db, tenant_id)
    except Exception as e:
        logger.error(f"Failed to load school admins of {tenant_id} for notification: {e}")
        admins = []

    user_ids = [admin.id for admin in admins] + list(extra_user_ids or [])
    return await emit_many(
        db,
        user_ids,
        title,
        message,
        category,
        priority=priority,
        data=data,
        action_url=action_url,
    )


async def list_notifications(
    db: AsyncSession,
    user_id: UUID,
    *,
    unread_only: bool = False,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[Notification], int]:
    """List the user's notifications."""
    return await repository.list_for_user(
        db,
        user_id,
        unread_only=unread_only,
        skip=skip,
        limit=limit,
    )


async def unread_count(db: AsyncSession, user_id: UUID) -> int:
    return await repository.count_unread(db, user_id)


async def mark_read(db: AsyncSession, user_id: UUID, notification_id: UUID) -> None:
    """
    Mark a notification as read.

    Raises:
        NotFoundError: Unknown id or owned by another user
    """
    if await repository.mark_read(db, user_id, notification_id, utcnow()) == 0:
        raise NotFoundError("Notification", notification_id)


async def mark_all_read(db: AsyncSession, user_id: UUID) -> int:
    """Mark all of the user's notifications as read. Returns rows updated."""
    return await repository.mark_all_read(db, user_id, utcnow())


async def delete_notification(db: AsyncSession, user_id: UUID, notification_id: UUID) -> None:
    """
    Delete a notification.

    Raises:
        NotFoundError: Unknown id or owned by another user
    """
    if await repository.delete_for_user(db, user_id, notification_id) == 0:
        raise NotFoundError("Notification", notification_id)


async def send(db: AsyncSession, data: NotificationSend) -> int:
    """
    Deliver an administrator-authored notification.

    Unlike the side-channel emitters, failures here propagate to the caller.

    Returns:
        Number of recipients

    Raises:
        NotFoundError: Target user or school does not exist
        ValidationError: Target has no recipients
    """
    if data.target == NotificationTarget.USER:
        user = await UserRepository.get_by_id(db, data.user_id)
        if user is None or not user.is_active:
            raise NotFoundError("User", data.user_id)
        user_ids = [user.id]
    elif data.target == NotificationTarget.SCHOOL:
        if await SchoolRepository.get_by_id(db, data.school_id) is None:
            raise NotFoundError("School", data.school_id)
        user_ids = [admin.id for admin in await UserRepository.list_school_admins(db, data.school_id)]
    else:
        user_ids = await UserRepository.list_active_ids(db)

    if not user_ids:
        raise ValidationError("The selected target has no active recipients.")

    _stage(
        db,
        user_ids,
        data.title,
        data.message,
        data.category,
        data.priority,
        None,
        data.action_url,
    )
    await db.commit()

    logger.info(f"Sent '{data.title}' notification to {len(user_ids)} user(s) ({data.target.value})")
    return len(user_ids)


async def cleanup_expired(db: AsyncSession) -> int:
    """Delete notifications past their expiry. Returns rows deleted."""
    deleted = await repository.delete_expired(db, utcnow())
    if deleted:
        logger.info(f"Deleted {deleted} expired notification(s)")
    return deleted
