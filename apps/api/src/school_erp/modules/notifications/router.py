"""
Notifications Router

Endpoints:
- GET    /notifications                 - List own notifications
- GET    /notifications/unread-count    - Count own unread notifications
- PUT    /notifications/{id}/read       - Mark one as read
- PUT    /notifications/mark-all-read   - Mark all as read
- DELETE /notifications/{id}            - Delete one
- POST   /notifications/send            - Send to a user, a school's admins or everyone
                                          (super admin, rate limited)
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.core.auth import Principal, get_current_principal, require_super_admin
from school_erp.core.database import get_db
from school_erp.core.rate_limit import principal_key, rate_limit
from school_erp.core.responses import ApiResponse, Page, ok
from school_erp.modules.notifications import service
from school_erp.modules.notifications.schemas import (
    NotificationResponse,
    NotificationSend,
    SendResult,
    UnreadCount,
)

router = APIRouter()

# Broadcasts per super admin
SEND_RATE_LIMIT = 20
SEND_RATE_WINDOW_SECONDS = 60


@router.get(
    "",
    response_model=ApiResponse[Page[NotificationResponse]],
    summary="List notifications",
)
async def list_notifications(
    unread_only: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    notifications, total = await service.list_notifications(
        db,
        principal.id,
        unread_only=unread_only,
        skip=skip,
        limit=limit,
    )
    items = [NotificationResponse.model_validate(n) for n in notifications]
    return ok(Page(items=items, total=total, skip=skip, limit=limit))


@router.get(
    "/unread-count",
    response_model=ApiResponse[UnreadCount],
    summary="Unread notification count",
)
async def unread_count(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return ok(UnreadCount(unread=await service.unread_count(db, principal.id)))


@router.put(
    "/mark-all-read",
    response_model=ApiResponse[UnreadCount],
    summary="Mark all notifications as read",
)
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    updated = await service.mark_all_read(db, principal.id)
    return ok(UnreadCount(unread=0), f"{updated} notification(s) marked as read.")


@router.post(
    "/send",
    response_model=ApiResponse[SendResult],
    status_code=status.HTTP_201_CREATED,
    summary="Send notification",
    responses={429: {"description": "Too many broadcasts"}},
)
@rate_limit(
    limit=SEND_RATE_LIMIT,
    window_seconds=SEND_RATE_WINDOW_SECONDS,
    key_func=principal_key,
)
async def send_notification(
    request: Request,
    data: NotificationSend,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_super_admin),
):
    recipients = await service.send(db, data)
    return ok(SendResult(recipients=recipients), "Notification sent.")


@router.put(
    "/{notification_id}/read",
    response_model=ApiResponse[None],
    summary="Mark notification as read",
    responses={404: {"description": "Notification not found"}},
)
async def mark_read(
    notification_id: UUID,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    await service.mark_read(db, principal.id, notification_id)
    return ok(message="Notification marked as read.")


@router.delete(
    "/{notification_id}",
    response_model=ApiResponse[None],
    summary="Delete notification",
    responses={404: {"description": "Notification not found"}},
)
async def delete_notification(
    notification_id: UUID,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    await service.delete_notification(db, principal.id, notification_id)
    return ok(message="Notification deleted.")
