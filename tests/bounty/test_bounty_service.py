"""Bounty joining and scavenger-hunt creation."""

import random
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from wadzzo.bounty.service import (
    HuntStep,
    create_scavenger_hunt,
    is_already_joined,
    join_bounty,
    validate_hunt_steps,
)
from wadzzo.database import session_scope
from wadzzo.db.models import ActionLocation, BountyType, Location, Notification, NotificationObject
from wadzzo.errors import AppError, ErrorKind
from wadzzo.game.geo import haversine_km
from wadzzo.notifications.service import BOUNTY_PARTICIPANT


async def _join(user_id: str, bounty_id: int) -> None:
    async with session_scope() as db:
        await join_bounty(db, user_id, bounty_id)
        await db.commit()


def _step(**overrides) -> HuntStep:
    now = datetime.now(timezone.utc)
    values = {
        "title": "Statue",
        "latitude": 23.81,
        "longitude": 90.41,
        "radius": 200.0,
        "collection_limit": 3,
        "start_date": now,
        "end_date": now + timedelta(days=7),
    }
    values.update(overrides)
    return HuntStep(**values)


class TestJoinBounty:
    @pytest.mark.asyncio
    async def test_join_records_participant(self, seed) -> None:
        creator = await seed.user()
        user = await seed.user()
        bounty_id = await seed.bounty(creator)

        await _join(user, bounty_id)

        async with session_scope() as db:
            assert await is_already_joined(db, bounty_id, user) is True
            assert await is_already_joined(db, bounty_id, creator) is False

    @pytest.mark.asyncio
    async def test_join_notifies_creator(self, seed) -> None:
        creator = await seed.user()
        user = await seed.user()
        bounty_id = await seed.bounty(creator)

        await _join(user, bounty_id)

        async with session_scope() as db:
            result = await db.execute(
                select(Notification, NotificationObject).join(
                    NotificationObject, Notification.notification_object_id == NotificationObject.id
                )
            )
            rows = result.all()
        assert len(rows) == 1
        notification, obj = rows[0]
        assert notification.notifier_id == creator
        assert notification.is_creator is True
        assert obj.actor_id == user
        assert obj.entity_type == BOUNTY_PARTICIPANT
        assert obj.entity_id == bounty_id

    @pytest.mark.asyncio
    async def test_join_twice_rejected(self, seed) -> None:
        creator = await seed.user()
        user = await seed.user()
        bounty_id = await seed.bounty(creator)
        await _join(user, bounty_id)

        with pytest.raises(AppError) as exc_info:
            await _join(user, bounty_id)

        assert exc_info.value.kind is ErrorKind.ALREADY_JOINED
        assert exc_info.value.message == "You already joined this bounty"

    @pytest.mark.asyncio
    async def test_creator_cannot_join(self, seed) -> None:
        creator = await seed.user()
        bounty_id = await seed.bounty(creator)

        with pytest.raises(AppError) as exc_info:
            await _join(creator, bounty_id)

        assert exc_info.value.kind is ErrorKind.OWN_BOUNTY
        async with session_scope() as db:
            count = (await db.execute(select(func.count()).select_from(Notification))).scalar_one()
        assert count == 0

    @pytest.mark.asyncio
    async def test_unknown_bounty(self, seed) -> None:
        user = await seed.user()
        with pytest.raises(AppError) as exc_info:
            await _join(user, 9999)
        assert exc_info.value.kind is ErrorKind.NOT_FOUND


class TestValidateHuntSteps:
    def test_valid(self) -> None:
        validate_hunt_steps([_step(), _step()], max_steps=20, max_collection_limit=100)

    def test_no_steps(self) -> None:
        with pytest.raises(AppError, match="Locations are required"):
            validate_hunt_steps([], max_steps=20, max_collection_limit=100)

    def test_too_many_steps(self) -> None:
        with pytest.raises(AppError) as exc_info:
            validate_hunt_steps([_step()] * 3, max_steps=2, max_collection_limit=100)
        assert exc_info.value.kind is ErrorKind.VALIDATION

    @pytest.mark.parametrize(
        "overrides",
        [
            {"radius": 0},
            {"collection_limit": 0},
            {"collection_limit": 101},
            {"end_date": datetime(2020, 1, 1, tzinfo=timezone.utc)},
        ],
    )
    def test_bad_step(self, overrides: dict) -> None:
        with pytest.raises(AppError) as exc_info:
            validate_hunt_steps([_step(), _step(**overrides)], max_steps=20, max_collection_limit=100)
        assert exc_info.value.kind is ErrorKind.VALIDATION
        assert exc_info.value.message.startswith("Step 2:")

    def test_naive_end_date_compared_as_utc(self) -> None:
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        validate_hunt_steps(
            [_step(start_date=start, end_date=datetime(2026, 1, 2))], max_steps=20, max_collection_limit=100
        )
        with pytest.raises(AppError, match="start date must be before end date"):
            validate_hunt_steps(
                [_step(start_date=start, end_date=datetime(2025, 12, 31))], max_steps=20, max_collection_limit=100
            )


class TestCreateScavengerHunt:
    @pytest.mark.asyncio
    async def test_creates_groups_pins_and_steps(self, seed) -> None:
        creator = await seed.user()
        steps = [_step(title="Gate", collection_limit=2), _step(title="Tower", collection_limit=4, radius=50)]

        async with session_scope() as db:
            bounty, groups = await create_scavenger_hunt(
                db,
                creator_id=creator,
                title="City hunt",
                description="Find them all",
                winners=2,
                required_balance=10,
                steps=steps,
                rng=random.Random(3),
            )
            await db.commit()

        assert bounty.bounty_type is BountyType.SCAVENGER_HUNT
        assert [g.title for g in groups] == ["Gate", "Tower"]
        assert [g.remaining for g in groups] == [2, 4]
        assert all(g.multi_pin is False for g in groups)
        assert all(g.approved is True for g in groups)

        async with session_scope() as db:
            actions = (
                await db.execute(
                    select(ActionLocation).where(ActionLocation.bounty_id == bounty.id).order_by(ActionLocation.serial)
                )
            ).scalars().all()
            tower_pins = (
                await db.execute(select(Location).where(Location.location_group_id == groups[1].id))
            ).scalars().all()

        assert [(a.serial, a.location_group_id) for a in actions] == [(1, groups[0].id), (2, groups[1].id)]
        assert len(tower_pins) == 4
        for pin in tower_pins:
            assert haversine_km(23.81, 90.41, pin.latitude, pin.longitude) <= 0.05 + 1e-6
