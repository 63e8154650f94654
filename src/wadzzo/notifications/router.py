"""Notification API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from wadzzo.auth.dependencies import get_current_user
from wadzzo.database import get_session
from wadzzo.db.models import User
from wadzzo.errors import AppError, ErrorKind
from wadzzo.notifications.schemas import (
    NotificationListResponse,
    NotificationResponse,
    UnseenCountResponse,
)
from wadzzo.notifications.service import (
    get_notifications,
    get_unseen_count,
    mark_all_as_seen,
    mark_as_seen,
)

router = APIRouter(prefix="/api/v1", tags=["Notifications"])


@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """List user's notifications (paginated)."""
    rows, total = await get_notifications(db, user.id, page, per_page)
    return NotificationListResponse(
        notifications=[
            NotificationResponse(
                id=str(n.id),
                entity_type=obj.entity_type,
                entity_id=obj.entity_id,
                actor_id=obj.actor_id,
                is_creator=n.is_creator,
                seen=n.is_seen,
                timestamp=n.created_at,
            )
            for n, obj in rows
        ],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post("/notifications/{notification_id}/read", status_code=200)
async def mark_notification_read(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Mark a notification as seen."""
    found = await mark_as_seen(db, user.id, notification_id)
    if not found:
        raise AppError(ErrorKind.NOT_FOUND, "Notification not found")
    await db.commit()
    return {"success": True, "data": "Notification marked as read"}


@router.post("/notifications/read-all", status_code=200)
async def mark_all_read(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Mark all notifications as seen."""
    count = await mark_all_as_seen(db, user.id)
    await db.commit()
    return {"success": True, "data": f"Marked {count} notifications as read"}


@router.get("/notifications/unread-count", response_model=UnseenCountResponse)
async def get_unread_notification_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Get unseen notification count."""
    count = await get_unseen_count(db, user.id)
    return UnseenCountResponse(unseen_count=count)
