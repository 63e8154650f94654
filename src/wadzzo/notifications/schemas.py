"""Pydantic schemas for notification endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class NotificationResponse(BaseModel):
    id: str
    entity_type: str
    entity_id: int
    actor_id: str
    is_creator: bool
    seen: bool
    timestamp: datetime | None = None


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    total: int
    page: int
    per_page: int


class UnseenCountResponse(BaseModel):
    unseen_count: int
