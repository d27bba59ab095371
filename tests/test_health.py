from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_reports_db_and_redis(async_client: AsyncClient):
    fake_redis = MagicMock()
    fake_redis.ping = AsyncMock(return_value=True)
    fake_redis.aclose = AsyncMock()

    with patch("workforce.api.v1.endpoints.health.aioredis.from_url", return_value=fake_redis):
        resp = await async_client.get("/api/v1/health")

    assert resp.status_code == 200
    assert resp.json() == {"db": True, "redis": True}
    fake_redis.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_health_survives_redis_outage(async_client: AsyncClient):
    with patch(
        "workforce.api.v1.endpoints.health.aioredis.from_url",
        side_effect=ConnectionError("redis down"),
    ):
        resp = await async_client.get("/api/v1/health")

    assert resp.status_code == 200
    assert resp.json() == {"db": True, "redis": False}


@pytest.mark.asyncio
async def test_health_closes_redis_client_when_ping_fails(async_client: AsyncClient):
    fake_redis = MagicMock()
    fake_redis.ping = AsyncMock(side_effect=ConnectionError("refused"))
    fake_redis.aclose = AsyncMock()

    with patch("workforce.api.v1.endpoints.health.aioredis.from_url", return_value=fake_redis):
        resp = await async_client.get("/api/v1/health")

    assert resp.json() == {"db": True, "redis": False}
    fake_redis.aclose.assert_awaited_once()
