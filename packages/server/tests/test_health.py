"""
Health and readiness endpoint tests.
"""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Health endpoint should return status ok."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_ready_check(client: AsyncClient):
    """Ready endpoint reports each dependency."""
    with patch("app.main.check_db", AsyncMock(return_value=True)), \
         patch("app.main.ping_redis", AsyncMock(return_value=True)):
        response = await client.get("/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready", "checks": {"database": "ok", "redis": "ok"}}


@pytest.mark.asyncio
async def test_ready_check_redis_down(client: AsyncClient):
    with patch("app.main.check_db", AsyncMock(return_value=True)), \
         patch("app.main.ping_redis", AsyncMock(side_effect=ConnectionError("refused"))):
        response = await client.get("/ready")
    assert response.status_code == 503
    assert response.json() == {
        "status": "unavailable",
        "checks": {"database": "ok", "redis": "down"},
    }


@pytest.mark.asyncio
async def test_request_id_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"


@pytest.mark.asyncio
async def test_api_root(client: AsyncClient):
    """API v1 root should return version and endpoint list."""
    response = await client.get("/api/v1/")
    assert response.status_code == 200
    data = response.json()
    assert data["api"] == "v1"
    assert "/workspaces" in data["endpoints"]
