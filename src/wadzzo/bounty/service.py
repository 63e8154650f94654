"""Bounty participation and scavenger-hunt creation.

Rules:
- A user joins a bounty at most once
- A creator cannot join their own bounty
- Joining notifies the creator
- A scavenger hunt is a bounty whose steps are single-slot location groups,
  linked through ActionLocation rows ordered by ``serial``
- Hunt groups are created approved; their pins are collectible at once
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wadzzo.db.models import (
    ActionLocation,
    Bounty,
    BountyParticipant,
    BountyType,
    Location,
    LocationGroup,
    NotificationObject,
)
from wadzzo.errors import AppError, ErrorKind
from wadzzo.game.geo import random_point_within
from wadzzo.notifications.service import BOUNTY_PARTICIPANT, create_notification_object

logger = logging.getLogger(__name__)

ALREADY_JOINED_MESSAGE = "You already joined this bounty"


async def get_bounty(db: AsyncSession, bounty_id: int) -> Bounty | None:
    """Get a bounty by ID."""
    result = await db.execute(select(Bounty).where(Bounty.id == bounty_id))
    return result.scalar_one_or_none()


async def get_participant(db: AsyncSession, bounty_id: int, user_id: str) -> BountyParticipant | None:
    """Get a user's participation in a bounty (if any)."""
    result = await db.execute(
        select(BountyParticipant).where(
            BountyParticipant.bounty_id == bounty_id,
            BountyParticipant.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def is_already_joined(db: AsyncSession, bounty_id: int, user_id: str) -> bool:
    return await get_participant(db, bounty_id, user_id) is not None


async def join_bounty(
    db: AsyncSession,
    user_id: str,
    bounty_id: int,
) -> tuple[BountyParticipant, NotificationObject]:
    """Register the user as a participant and notify the bounty creator.

    Returns the participant and the creator's notification, which the caller
    pushes after commit.
    """
    bounty = await get_bounty(db, bounty_id)
    if bounty is None:
        raise AppError(ErrorKind.NOT_FOUND, "Bounty not found")

    if await get_participant(db, bounty_id, user_id) is not None:
        raise AppError(ErrorKind.ALREADY_JOINED, ALREADY_JOINED_MESSAGE)

    if bounty.creator_id == user_id:
        raise AppError(ErrorKind.OWN_BOUNTY, "You can't join your own bounty")

    participant = BountyParticipant(bounty_id=bounty_id, user_id=user_id)
    db.add(participant)
    try:
        await db.flush()
    except IntegrityError as e:
        raise AppError(ErrorKind.ALREADY_JOINED, ALREADY_JOINED_MESSAGE) from e

    notification_object = await create_notification_object(
        db,
        actor_id=user_id,
        entity_type=BOUNTY_PARTICIPANT,
        entity_id=bounty_id,
        notifier_ids=[bounty.creator_id],
        is_creator=True,
    )

    logger.info("User %s joined bounty %d", user_id, bounty_id)
    return participant, notification_object


@dataclass
class HuntStep:
    title: str
    latitude: float
    longitude: float
    radius: float
    collection_limit: int
    start_date: datetime
    end_date: datetime
    auto_collect: bool = False
    description: str | None = None
    pin_image: str | None = None
    pin_url: str | None = None


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def validate_hunt_steps(steps: list[HuntStep], max_steps: int, max_collection_limit: int) -> None:
    """Reject hunts that cannot be laid out. Raises AppError(VALIDATION)."""
    if not steps:
        raise AppError(ErrorKind.VALIDATION, "Locations are required")
    if len(steps) > max_steps:
        raise AppError(ErrorKind.VALIDATION, f"A scavenger hunt has at most {max_steps} steps")

    for index, step in enumerate(steps, start=1):
        if step.radius <= 0:
            raise AppError(ErrorKind.VALIDATION, f"Step {index}: radius must be greater than 0")
        if step.collection_limit <= 0:
            raise AppError(ErrorKind.VALIDATION, f"Step {index}: collection limit must be greater than 0")
        if step.collection_limit > max_collection_limit:
            raise AppError(
                ErrorKind.VALIDATION,
                f"Step {index}: collection limit must be at most {max_collection_limit}",
            )
        if _as_utc(step.start_date) >= _as_utc(step.end_date):
            raise AppError(ErrorKind.VALIDATION, f"Step {index}: start date must be before end date")


async def create_scavenger_hunt(
    db: AsyncSession,
    creator_id: str,
    title: str,
    description: str,
    winners: int,
    required_balance: float,
    steps: list[HuntStep],
    price_usd: float = 0,
    price_band: float = 0,
    cover_image_urls: list[str] | None = None,
    rng: random.Random | None = None,
) -> tuple[Bounty, list[LocationGroup]]:
    """Create a SCAVENGER_HUNT bounty with one location group per step.

    Each step scatters ``collection_limit`` pins uniformly inside its radius.
    Steps must already be validated with ``validate_hunt_steps``.
    """
    bounty = Bounty(
        creator_id=creator_id,
        title=title,
        description=description,
        total_winner=winners,
        required_balance=required_balance,
        price_in_usd=price_usd,
        price_in_band=price_band,
        bounty_type=BountyType.SCAVENGER_HUNT,
        image_urls=cover_image_urls or [],
    )
    db.add(bounty)
    await db.flush()

    groups: list[LocationGroup] = []
    for serial, step in enumerate(steps, start=1):
        group = LocationGroup(
            creator_id=creator_id,
            title=step.title,
            description=step.description or "",
            image=step.pin_image,
            link=step.pin_url,
            limit=step.collection_limit,
            remaining=step.collection_limit,
            multi_pin=False,
            approved=True,
            start_date=_as_utc(step.start_date),
            end_date=_as_utc(step.end_date),
        )
        db.add(group)
        await db.flush()

        for _ in range(step.collection_limit):
            lat, lng = random_point_within(step.latitude, step.longitude, step.radius, rng)
            db.add(Location(location_group_id=group.id, latitude=lat, longitude=lng, auto_collect=step.auto_collect))

        db.add(ActionLocation(bounty_id=bounty.id, location_group_id=group.id, creator_id=creator_id, serial=serial))
        groups.append(group)

    await db.flush()
    logger.info("Scavenger hunt %d created by %s with %d steps", bounty.id, creator_id, len(groups))
    return bounty, groups
