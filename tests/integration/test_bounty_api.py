"""Bounty API: join, joined check, scavenger hunt creation."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from wadzzo.database import session_scope
from wadzzo.db.models import Notification
from wadzzo.redis_client import get_optional_redis

JOIN = "/api/v1/bounties/join"


@pytest.mark.asyncio
async def test_join_bounty(client: AsyncClient, seed, auth) -> None:
    creator = await seed.user()
    user = await seed.user()
    bounty_id = await seed.bounty(creator)

    response = await client.post(JOIN, json={"bountyId": bounty_id}, headers=auth(user))

    assert response.status_code == 200
    assert response.json() == {"success": True, "data": "Joined bounty"}

    joined = await client.get(f"/api/v1/bounties/{bounty_id}/joined", headers=auth(user))
    assert joined.json() == {"is_joined": True}


@pytest.mark.asyncio
async def test_join_twice(client: AsyncClient, seed, auth) -> None:
    creator = await seed.user()
    user = await seed.user()
    bounty_id = await seed.bounty(creator)
    await client.post(JOIN, json={"bountyId": bounty_id}, headers=auth(user))

    response = await client.post(JOIN, json={"bountyId": bounty_id}, headers=auth(user))

    assert response.status_code == 422
    assert response.json()["kind"] == "already_joined"


@pytest.mark.asyncio
async def test_join_own_bounty(client: AsyncClient, seed, auth) -> None:
    creator = await seed.user()
    bounty_id = await seed.bounty(creator)

    response = await client.post(JOIN, json={"bountyId": bounty_id}, headers=auth(creator))

    assert response.status_code == 422
    assert response.json()["data"] == "You can't join your own bounty"


@pytest.mark.asyncio
async def test_join_missing_bounty(client: AsyncClient, seed, auth) -> None:
    user = await seed.user()
    response = await client.post(JOIN, json={"bountyId": 424242}, headers=auth(user))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_join_invalid_bounty_id(client: AsyncClient, seed, auth) -> None:
    user = await seed.user()
    response = await client.post(JOIN, json={"bountyId": 0}, headers=auth(user))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_join_requires_auth(client: AsyncClient, database) -> None:
    response = await client.post(JOIN, json={"bountyId": 1})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_not_joined(client: AsyncClient, seed, auth) -> None:
    creator = await seed.user()
    user = await seed.user()
    bounty_id = await seed.bounty(creator)
    response = await client.get(f"/api/v1/bounties/{bounty_id}/joined", headers=auth(user))
    assert response.json() == {"is_joined": False}


def _hunt_body(**step_overrides) -> dict:
    now = datetime.now(timezone.utc)
    step = {
        "title": "Fountain",
        "latitude": 40.0,
        "longitude": -73.0,
        "radius": 100,
        "collection_limit": 2,
        "start_date": now.isoformat(),
        "end_date": (now + timedelta(days=3)).isoformat(),
    }
    step.update(step_overrides)
    return {"title": "Park hunt", "winners": 1, "steps": [step, {**step, "title": "Bench"}]}


@pytest.mark.asyncio
async def test_create_scavenger_hunt(client: AsyncClient, seed, auth) -> None:
    creator = await seed.user()

    response = await client.post("/api/v1/bounties/scavenger-hunt", json=_hunt_body(), headers=auth(creator))

    assert response.status_code == 201
    data = response.json()
    assert data["bounty_type"] == "SCAVENGER_HUNT"
    assert [(s["serial"], s["title"], s["remaining"]) for s in data["steps"]] == [
        (1, "Fountain", 2),
        (2, "Bench", 2),
    ]


@pytest.mark.asyncio
async def test_hunt_step_then_collect_advances(client: AsyncClient, seed, auth) -> None:
    creator = await seed.user()
    hunter = await seed.user()
    created = await client.post(
        "/api/v1/bounties/scavenger-hunt", json=_hunt_body(auto_collect=True), headers=auth(creator)
    )
    bounty_id = created.json()["id"]
    await client.post(JOIN, json={"bountyId": bounty_id}, headers=auth(hunter))

    nearest = await client.post(
        "/api/v1/game/locations/nearest", json={"lat": 40.0, "lng": -73.0}, headers=auth(hunter)
    )
    pin_id = nearest.json()["nearest_location"]["id"]
    consumed = await client.post(
        "/api/v1/game/locations/consume", json={"location_id": pin_id}, headers=auth(hunter)
    )

    assert consumed.status_code == 200
    assert consumed.json()["step_advanced"] is True


@pytest.mark.asyncio
async def test_create_scavenger_hunt_rejects_bad_step(client: AsyncClient, seed, auth) -> None:
    creator = await seed.user()

    response = await client.post(
        "/api/v1/bounties/scavenger-hunt", json=_hunt_body(radius=0), headers=auth(creator)
    )

    assert response.status_code == 400
    assert response.json()["data"].startswith("Step 1:")


@pytest.mark.asyncio
async def test_join_with_numeric_string_id(client: AsyncClient, seed, auth) -> None:
    creator = await seed.user()
    user = await seed.user()
    bounty_id = await seed.bounty(creator)

    response = await client.post(JOIN, json={"bountyId": str(bounty_id)}, headers=auth(user))

    assert response.status_code == 200


class _CommitCheckingRedis:
    """Records each publish and whether its notification row was already committed."""

    def __init__(self) -> None:
        self.published: list[tuple[str, bool]] = []

    async def publish(self, channel: str, message: str) -> int:
        notification_id = int(json.loads(message)["data"]["id"])
        async with session_scope() as db:
            committed = await db.get(Notification, notification_id) is not None
        self.published.append((channel, committed))
        return 1


@pytest.mark.asyncio
async def test_join_pushes_only_committed_notifications(database, seed, auth) -> None:
    from wadzzo.main import create_app

    creator = await seed.user()
    user = await seed.user()
    bounty_id = await seed.bounty(creator)
    redis = _CommitCheckingRedis()
    app = create_app()
    app.dependency_overrides[get_optional_redis] = lambda: redis

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        joined = await client.post(JOIN, json={"bountyId": bounty_id}, headers=auth(user))
        rejected = await client.post(JOIN, json={"bountyId": bounty_id}, headers=auth(user))

    assert joined.status_code == 200
    assert rejected.status_code == 422
    assert redis.published == [(f"ws:user:{creator}", True)]


@pytest.mark.asyncio
async def test_hunt_step_with_mixed_timezones_rejected(client: AsyncClient, seed, auth) -> None:
    creator = await seed.user()

    response = await client.post(
        "/api/v1/bounties/scavenger-hunt",
        json=_hunt_body(start_date="2026-01-01T00:00:00Z", end_date="2026-01-02T00:00:00"),
        headers=auth(creator),
    )

    assert response.status_code == 400
    assert response.json()["kind"] == "validation"
