"""Middleware tests: request ID, rate limiting, CORS, error handling."""

from collections import Counter

import pytest
from httpx import AsyncClient


class _FakePipeline:
    def __init__(self, counts: Counter) -> None:
        self.counts = counts
        self.key = ""

    def incr(self, key: str) -> None:
        self.key = key
        self.counts[key] += 1

    def expire(self, key: str, seconds: int) -> None:
        pass

    async def execute(self) -> list[int]:
        return [self.counts[self.key], True]


class _FakeRedis:
    def __init__(self) -> None:
        self.counts: Counter = Counter()

    def pipeline(self) -> _FakePipeline:
        return _FakePipeline(self.counts)


@pytest.fixture
def fake_redis(monkeypatch) -> _FakeRedis:
    redis = _FakeRedis()
    monkeypatch.setattr("wadzzo.middleware.rate_limit.get_redis", lambda: redis)
    return redis


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert len(response.headers["x-request-id"]) == 36


@pytest.mark.asyncio
async def test_request_id_preserved(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-Id": "test-abc-123"})
    assert response.headers["x-request-id"] == "test-abc-123"


@pytest.mark.asyncio
async def test_rate_limit_headers(client: AsyncClient, fake_redis) -> None:
    response = await client.get("/version")
    assert response.headers["x-ratelimit-limit"] == "100"
    assert response.headers["x-ratelimit-remaining"] == "99"


@pytest.mark.asyncio
async def test_rate_limit_blocks_excess(client: AsyncClient, fake_redis) -> None:
    for _ in range(100):
        await client.get("/version")
    response = await client.get("/version")
    assert response.status_code == 429
    assert "retry-after" in response.headers


@pytest.mark.asyncio
async def test_consume_has_its_own_budget(client: AsyncClient, fake_redis) -> None:
    for _ in range(30):
        await client.post("/api/v1/game/locations/consume", json={})
    blocked = await client.post("/api/v1/game/locations/consume", json={})
    assert blocked.status_code == 429
    assert blocked.headers["x-ratelimit-limit"] == "30"

    other = await client.get("/version")
    assert other.status_code == 200


@pytest.mark.asyncio
async def test_health_exempt_from_rate_limit(client: AsyncClient, fake_redis) -> None:
    for _ in range(150):
        response = await client.get("/health")
        assert response.status_code == 200
    assert not fake_redis.counts


@pytest.mark.asyncio
async def test_cors_preflight(client: AsyncClient) -> None:
    response = await client.options(
        "/api/v1/game/locations/consume",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


@pytest.mark.asyncio
async def test_404_returns_json(client: AsyncClient) -> None:
    response = await client.get("/nonexistent-path")
    assert response.status_code == 404
    assert response.json()["detail"] == "Not Found"
