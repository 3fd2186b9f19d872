"""Tests for the /health and /metrics endpoints."""
from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from app.config import settings


def _mock_session(execute=None) -> AsyncMock:
    mock_session = AsyncMock()
    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=False)
    mock_session.execute = execute or AsyncMock()
    return mock_session


@pytest.mark.asyncio
async def test_health_check_all_connected(client: AsyncClient):
    redis_client = AsyncMock()

    with (
        patch("app.main.async_session", return_value=_mock_session()),
        patch("redis.asyncio.from_url", return_value=redis_client),
    ):
        response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "connected", "redis": "connected"}
    redis_client.ping.assert_awaited_once()


@pytest.mark.asyncio
async def test_health_check_redis_down_is_not_fatal(client: AsyncClient):
    redis_client = AsyncMock()
    redis_client.ping.side_effect = ConnectionError("refused")

    with (
        patch("app.main.async_session", return_value=_mock_session()),
        patch("redis.asyncio.from_url", return_value=redis_client),
    ):
        response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["redis"] == "unavailable"
    # Only production reports degraded service without Redis
    assert data["status"] == "ok"


@pytest.mark.asyncio
async def test_health_check_db_down(client: AsyncClient):
    failing = _mock_session(execute=AsyncMock(side_effect=OSError("connection refused")))

    with patch("app.main.async_session", return_value=failing):
        response = await client.get("/health")

    assert response.status_code == 503
    assert response.json() == {"status": "unhealthy", "database": "disconnected", "redis": "unknown"}


@pytest.mark.asyncio
async def test_metrics_open_in_development(client: AsyncClient):
    await client.get("/installers")
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "instalatori_http_requests_total" in response.text


@pytest.mark.asyncio
async def test_metrics_key_required_when_configured(client: AsyncClient):
    with patch.object(settings, "METRICS_API_KEY", "scrape-key"):
        denied = await client.get("/metrics")
        allowed = await client.get("/metrics", headers={"X-Metrics-Key": "scrape-key"})

    assert denied.status_code == 403
    assert denied.json() == {"success": False, "error": "Invalid metrics API key"}
    assert allowed.status_code == 200
