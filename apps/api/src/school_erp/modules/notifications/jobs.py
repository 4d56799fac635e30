"""
Notification Background Jobs

Hourly removal of notifications past their `expires_at`.

The job opens its own database session and is idempotent; running it twice
in a row deletes nothing the second time.
"""

import logging
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from school_erp.core.database import async_session_maker
from school_erp.core.scheduler import register_job
from school_erp.modules.notifications import service

logger = logging.getLogger(__name__)

JOB_ID_CLEANUP_EXPIRED = "notifications_cleanup_expired"


async def cleanup_expired_notifications() -> dict[str, Any]:
    """
    Delete expired notifications.

    Returns:
        Dict with the number of deleted rows
    """
    async with async_session_maker() as db:
        deleted = await service.cleanup_expired(db)

    return {"deleted": deleted}


def register_notification_jobs() -> None:
    """Register notification jobs with the scheduler. Call on startup."""
    register_job(
        job_id=JOB_ID_CLEANUP_EXPIRED,
        func=cleanup_expired_notifications,
        trigger=IntervalTrigger(hours=1),
    )
    logger.info("Notification jobs registered")
