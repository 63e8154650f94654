"""Notification creation and delivery service.

A NotificationObject records what happened (actor, entity type, entity id).
It fans out to one Notification row per recipient. Once committed, new
notifications are pushed to each recipient over Redis pub/sub when Redis is
available.

Entity types: BOUNTY_PARTICIPANT, BOUNTY_WINNER, BOUNTY_COMMENT, FOLLOW
"""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wadzzo.db.models import Notification, NotificationObject

logger = logging.getLogger(__name__)

BOUNTY_PARTICIPANT = "BOUNTY_PARTICIPANT"
VALID_ENTITY_TYPES = {BOUNTY_PARTICIPANT, "BOUNTY_WINNER", "BOUNTY_COMMENT", "FOLLOW"}


async def create_notification_object(
    db: AsyncSession,
    actor_id: str,
    entity_type: str,
    entity_id: int,
    notifier_ids: list[str],
    is_creator: bool = False,
    is_user: bool = True,
) -> NotificationObject:
    """Create a notification object and one notification per recipient.

    Nothing is pushed here. Call ``push_notifications`` once the caller has
    committed, so subscribers never see a row that was rolled back.
    """
    if entity_type not in VALID_ENTITY_TYPES:
        raise ValueError(f"Invalid entity type: {entity_type}. Must be one of {VALID_ENTITY_TYPES}")

    notification_object = NotificationObject(
        actor_id=actor_id,
        entity_type=entity_type,
        entity_id=entity_id,
        is_user=is_user,
        notifications=[
            Notification(notifier_id=notifier_id, is_creator=is_creator)
            for notifier_id in notifier_ids
        ],
    )
    db.add(notification_object)
    await db.flush()
    return notification_object


async def push_notifications(redis: Any | None, notification_object: NotificationObject) -> None:
    """Publish each recipient's copy to ``ws:user:<id>``. No-op without Redis."""
    if redis is None:
        return
    for notification in notification_object.notifications:
        await _push(redis, notification, notification_object)


async def _push(redis: Any, notification: Notification, notification_object: NotificationObject) -> None:
    payload = {
        "event": "notification",
        "data": {
            "id": str(notification.id),
            "entityType": notification_object.entity_type,
            "entityId": notification_object.entity_id,
            "actorId": notification_object.actor_id,
            "isCreator": notification.is_creator,
            "timestamp": notification.created_at.isoformat() if notification.created_at else None,
        },
    }
    try:
        await redis.publish(f"ws:user:{notification.notifier_id}", json.dumps(payload))
    except Exception:
        logger.warning("Failed to push notification to %s", notification.notifier_id, exc_info=True)


async def get_notifications(
    db: AsyncSession,
    user_id: str,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[tuple[Notification, NotificationObject]], int]:
    """Get user's notifications with their objects (paginated, most recent first)."""
    offset = (page - 1) * per_page

    total_result = await db.execute(
        select(func.count()).select_from(Notification).where(Notification.notifier_id == user_id)
    )
    total = total_result.scalar_one()

    result = await db.execute(
        select(Notification, NotificationObject)
        .join(NotificationObject, Notification.notification_object_id == NotificationObject.id)
        .where(Notification.notifier_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset(offset)
        .limit(per_page)
    )
    return [(row[0], row[1]) for row in result], total


async def mark_as_seen(db: AsyncSession, user_id: str, notification_id: int) -> bool:
    """Mark a single notification as seen. Returns True if found."""
    result = await db.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.notifier_id == user_id)
        .values(is_seen=True)
        .execution_options(synchronize_session=False)
    )
    await db.flush()
    return result.rowcount > 0


async def mark_all_as_seen(db: AsyncSession, user_id: str) -> int:
    """Mark all unseen notifications as seen. Returns count updated."""
    result = await db.execute(
        update(Notification)
        .where(Notification.notifier_id == user_id, Notification.is_seen.is_(False))
        .values(is_seen=True)
        .execution_options(synchronize_session=False)
    )
    await db.flush()
    return result.rowcount


async def get_unseen_count(db: AsyncSession, user_id: str) -> int:
    """Get count of unseen notifications."""
    result = await db.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.notifier_id == user_id, Notification.is_seen.is_(False))
    )
    return result.scalar_one()
