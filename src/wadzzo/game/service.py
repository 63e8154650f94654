"""Pin collection business logic.

Rules:
- A pin belongs to a location group; the group's ``remaining`` is the shared pool
- Collection policy comes from the group's ``multi_pin`` flag (see ``policy``)
- Check, decrement and insert happen in one transaction; the caller commits
- Collecting a single-slot group linked to a bounty advances the collector's step
- The map and the nearest-pin lookup show only approved, unexpired groups with slots left
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import ColumnElement, exists, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wadzzo.db.models import (
    ActionLocation,
    BountyParticipant,
    Location,
    LocationConsumer,
    LocationGroup,
)
from wadzzo.errors import AppError, ErrorKind
from wadzzo.game.geo import haversine_km
from wadzzo.game.policy import CollectionPolicy, ConsumeDecision, decide_consumption, slot_key

logger = logging.getLogger(__name__)

LIMIT_REACHED_MESSAGE = "Location limit reached"


@dataclass
class ConsumeOutcome:
    consumer: LocationConsumer
    policy: CollectionPolicy
    remaining: int
    step_advanced: bool


@dataclass
class ConsumedPin:
    consumer: LocationConsumer
    location: Location
    group: LocationGroup


@dataclass
class AvailablePin:
    location: Location
    group: LocationGroup
    collected: bool


def _collectible_now(now: datetime) -> tuple[ColumnElement[bool], ...]:
    """Filters for groups that are live on the map right now."""
    return (
        LocationGroup.approved.is_(True),
        LocationGroup.end_date >= now,
        LocationGroup.remaining > 0,
    )


async def _get_location(db: AsyncSession, location_id: str) -> Location | None:
    result = await db.execute(select(Location).where(Location.id == location_id))
    return result.scalar_one_or_none()


async def _lock_group(db: AsyncSession, group_id: int) -> LocationGroup | None:
    """Load a group and hold its row lock until the transaction ends."""
    result = await db.execute(
        select(LocationGroup).where(LocationGroup.id == group_id).with_for_update()
    )
    return result.scalar_one_or_none()


async def has_consumed_location(db: AsyncSession, location_id: str, user_id: str) -> bool:
    result = await db.execute(
        select(
            exists().where(
                LocationConsumer.location_id == location_id,
                LocationConsumer.user_id == user_id,
            )
        )
    )
    return bool(result.scalar())


async def has_consumed_group(db: AsyncSession, group_id: int, user_id: str) -> bool:
    """True if the user collected any pin of the group."""
    result = await db.execute(
        select(
            exists()
            .where(LocationConsumer.user_id == user_id)
            .where(LocationConsumer.location_id == Location.id)
            .where(Location.location_group_id == group_id)
        )
    )
    return bool(result.scalar())


async def _take_slot(db: AsyncSession, group_id: int) -> bool:
    """Decrement ``remaining`` only while it is positive. Returns False when the pool is empty."""
    result = await db.execute(
        update(LocationGroup)
        .where(LocationGroup.id == group_id, LocationGroup.remaining > 0)
        .values(remaining=LocationGroup.remaining - 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0


async def _advance_bounty_steps(db: AsyncSession, group_id: int, user_id: str) -> bool:
    """Advance the user's step in every bounty that uses this group as a hunt step."""
    linked_bounties = select(ActionLocation.bounty_id).where(ActionLocation.location_group_id == group_id)
    result = await db.execute(
        update(BountyParticipant)
        .where(
            BountyParticipant.user_id == user_id,
            BountyParticipant.bounty_id.in_(linked_bounties),
        )
        .values(current_step=BountyParticipant.current_step + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0


async def consume_location(db: AsyncSession, user_id: str, location_id: str) -> ConsumeOutcome:
    """Record that ``user_id`` collected ``location_id``.

    Raises:
        AppError(NOT_FOUND): unknown pin, or pin without a group.
        AppError(LIMIT_REACHED): the user already holds the slot or the pool is empty.
    """
    location = await _get_location(db, location_id)
    if location is None or location.location_group_id is None:
        raise AppError(ErrorKind.NOT_FOUND, "Could not find the location")

    group = await _lock_group(db, location.location_group_id)
    if group is None:
        raise AppError(ErrorKind.NOT_FOUND, "Could not find the location")

    policy = CollectionPolicy.for_group(group.multi_pin)
    decision = decide_consumption(
        policy,
        remaining=group.remaining,
        consumed_location=await has_consumed_location(db, location.id, user_id),
        consumed_group=await has_consumed_group(db, group.id, user_id),
    )
    if decision is ConsumeDecision.LIMIT_REACHED:
        raise AppError(ErrorKind.LIMIT_REACHED, LIMIT_REACHED_MESSAGE)

    if not await _take_slot(db, group.id):
        raise AppError(ErrorKind.LIMIT_REACHED, LIMIT_REACHED_MESSAGE)

    consumer = LocationConsumer(
        location_id=location.id,
        user_id=user_id,
        slot_key=slot_key(policy, group.id, location.id),
    )
    db.add(consumer)
    try:
        await db.flush()
    except IntegrityError as e:
        # A concurrent request took the same slot first
        raise AppError(ErrorKind.LIMIT_REACHED, LIMIT_REACHED_MESSAGE) from e

    step_advanced = False
    if policy is CollectionPolicy.SINGLE_SLOT_PER_GROUP:
        step_advanced = await _advance_bounty_steps(db, group.id, user_id)

    remaining_result = await db.execute(select(LocationGroup.remaining).where(LocationGroup.id == group.id))
    remaining = remaining_result.scalar_one()

    logger.info(
        "Location %s consumed by %s (group=%d, remaining=%d, step_advanced=%s)",
        location.id, user_id, group.id, remaining, step_advanced,
    )
    return ConsumeOutcome(consumer=consumer, policy=policy, remaining=remaining, step_advanced=step_advanced)


async def get_consumed_locations(db: AsyncSession, user_id: str) -> list[ConsumedPin]:
    """The user's visible collected pins, newest first."""
    result = await db.execute(
        select(LocationConsumer, Location, LocationGroup)
        .join(Location, LocationConsumer.location_id == Location.id)
        .join(LocationGroup, Location.location_group_id == LocationGroup.id)
        .where(LocationConsumer.user_id == user_id, LocationConsumer.hidden.is_(False))
        .order_by(LocationConsumer.created_at.desc())
    )
    return [ConsumedPin(consumer=row[0], location=row[1], group=row[2]) for row in result]


async def claim_pin(db: AsyncSession, user_id: str, consumer_id: str) -> LocationConsumer:
    """Mark one of the user's collected pins as claimed."""
    result = await db.execute(select(LocationConsumer).where(LocationConsumer.id == consumer_id))
    consumer = result.scalar_one_or_none()
    if consumer is None:
        raise AppError(ErrorKind.NOT_FOUND, "Collected pin not found")
    if consumer.user_id != user_id:
        raise AppError(ErrorKind.FORBIDDEN, "You are not authorized")

    consumer.claimed_at = datetime.now(timezone.utc)
    await db.flush()
    return consumer


async def get_available_locations(
    db: AsyncSession,
    user_id: str,
    now: datetime | None = None,
) -> list[AvailablePin]:
    """Pins currently on the map, each flagged with whether the user already collected it.

    A multi-pin group marks only the pins the user took. A single-slot group
    marks every pin once the user took any of them.
    """
    now = now or datetime.now(timezone.utc)
    result = await db.execute(
        select(Location, LocationGroup)
        .join(LocationGroup, Location.location_group_id == LocationGroup.id)
        .where(*_collectible_now(now))
        .order_by(LocationGroup.id, Location.created_at)
    )
    rows = result.all()

    consumed = await db.execute(
        select(LocationConsumer.location_id, Location.location_group_id)
        .join(Location, LocationConsumer.location_id == Location.id)
        .where(LocationConsumer.user_id == user_id)
    )
    consumed_locations: set[str] = set()
    consumed_groups: set[int] = set()
    for location_id, group_id in consumed:
        consumed_locations.add(location_id)
        consumed_groups.add(group_id)

    pins = []
    for location, group in rows:
        if group.multi_pin:
            collected = location.id in consumed_locations
        else:
            collected = group.id in consumed_groups
        pins.append(AvailablePin(location=location, group=group, collected=collected))
    return pins


async def find_nearest_location(
    db: AsyncSession,
    lat: float,
    lng: float,
    now: datetime | None = None,
) -> tuple[Location, float]:
    """Nearest collectible auto-collect pin to (lat, lng) and its distance in km."""
    now = now or datetime.now(timezone.utc)
    result = await db.execute(
        select(Location)
        .join(LocationGroup, Location.location_group_id == LocationGroup.id)
        .where(Location.auto_collect.is_(True), *_collectible_now(now))
    )
    nearest: Location | None = None
    best = float("inf")
    for location in result.scalars():
        distance = haversine_km(lat, lng, location.latitude, location.longitude)
        if distance < best:
            best = distance
            nearest = location

    if nearest is None:
        raise AppError(ErrorKind.NOT_FOUND, "No locations found")
    return nearest, best
