import pytest
from sqlalchemy.exc import OperationalError

from fwb_gallery.db import get_session
from fwb_gallery.main import app


@pytest.mark.asyncio
async def test_health_ok(client):
    r = await client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert "request_id" in data
    assert r.headers["X-Request-ID"] == data["request_id"]


@pytest.mark.asyncio
async def test_health_echoes_request_id(client):
    r = await client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert r.json()["request_id"] == "abc-123"
    assert r.headers["X-Request-ID"] == "abc-123"


@pytest.mark.asyncio
async def test_version_ok(client):
    r = await client.get("/version")
    assert r.status_code == 200
    data = r.json()
    assert "version" in data and "git_sha" in data


@pytest.mark.asyncio
async def test_ready_checks_database(client):
    r = await client.get("/health/ready")
    assert r.status_code == 200
    assert r.json() == {"status": "ready", "database": "up"}


@pytest.mark.asyncio
async def test_ready_reports_database_outage(client):
    class DeadSession:
        async def execute(self, *args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    async def _dead():
        yield DeadSession()

    app.dependency_overrides[get_session] = _dead
    r = await client.get("/health/ready")
    assert r.status_code == 503
    assert r.json()["database"] == "down"
