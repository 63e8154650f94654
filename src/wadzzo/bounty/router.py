"""Bounty endpoints: join, joined check, scavenger hunt creation."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wadzzo.auth.dependencies import get_current_user
from wadzzo.bounty.schemas import (
    CreateScavengerHuntRequest,
    HuntStepResponse,
    JoinBountyRequest,
    JoinedResponse,
    ScavengerHuntResponse,
)
from wadzzo.bounty.service import (
    HuntStep,
    create_scavenger_hunt,
    is_already_joined,
    join_bounty,
    validate_hunt_steps,
)
from wadzzo.config import get_settings
from wadzzo.database import get_session
from wadzzo.db.models import User
from wadzzo.errors import AppError
from wadzzo.game.schemas import ActionResponse
from wadzzo.notifications.service import push_notifications
from wadzzo.redis_client import get_optional_redis

router = APIRouter(prefix="/api/v1/bounties", tags=["Bounties"])


@router.post("/join", response_model=ActionResponse)
async def join_bounty_endpoint(
    body: JoinBountyRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: Any = Depends(get_optional_redis),
):
    """Join a bounty as a participant."""
    try:
        _, notification_object = await join_bounty(db, user.id, body.bounty_id)
        await db.commit()
    except AppError:
        await db.rollback()
        raise

    await push_notifications(redis, notification_object)
    return ActionResponse(data="Joined bounty")


@router.get("/{bounty_id}/joined", response_model=JoinedResponse)
async def joined_endpoint(
    bounty_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Whether the current user already joined the bounty."""
    return JoinedResponse(is_joined=await is_already_joined(db, bounty_id, user.id))


@router.post("/scavenger-hunt", response_model=ScavengerHuntResponse, status_code=201)
async def create_scavenger_hunt_endpoint(
    body: CreateScavengerHuntRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Create a scavenger-hunt bounty with its location steps."""
    settings = get_settings()
    steps = [HuntStep(**step.model_dump()) for step in body.steps]
    validate_hunt_steps(steps, settings.scavenger_max_steps, settings.scavenger_max_collection_limit)

    try:
        bounty, groups = await create_scavenger_hunt(
            db,
            creator_id=user.id,
            title=body.title,
            description=body.description,
            winners=body.winners,
            required_balance=body.required_balance,
            steps=steps,
            price_usd=body.price_usd,
            price_band=body.price_band,
            cover_image_urls=body.cover_image_urls,
        )
        await db.commit()
    except AppError:
        await db.rollback()
        raise

    return ScavengerHuntResponse(
        id=bounty.id,
        title=bounty.title,
        bounty_type=bounty.bounty_type.value,
        total_winner=bounty.total_winner,
        steps=[
            HuntStepResponse(location_group_id=g.id, serial=i, title=g.title, remaining=g.remaining)
            for i, g in enumerate(groups, start=1)
        ],
    )
