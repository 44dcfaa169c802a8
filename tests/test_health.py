"""Health endpoint tests."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession


@pytest.mark.asyncio
async def test_health_returns_ok(client):
    """Health endpoint should return server status and version."""
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["server"] == "ok"
    assert data["database"] == "ok"
    assert data["status"] == "healthy"
    assert "version" in data


@pytest.mark.asyncio
async def test_health_reports_stream_counts(client, broadcaster, make_connection):
    idle, subscribed = make_connection(), make_connection()
    broadcaster.connect(idle)
    broadcaster.subscribe(subscribed, "auth")

    data = (await client.get("/api/health")).json()
    assert data["connections"] == 2
    assert data["subscribers"] == 1


@pytest.mark.asyncio
async def test_health_degraded_without_database(client, monkeypatch):
    async def fail(*args, **kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr(AsyncSession, "execute", fail)

    data = (await client.get("/api/health")).json()
    assert data["status"] == "degraded"
    assert data["database"].startswith("error")
