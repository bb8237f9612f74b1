import pytest
from sqlalchemy.exc import OperationalError

from app.core.database import get_db
from app.main import app


class _DownSession:
    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_health_db(client):
    resp = await client.get("/health/db")
    assert resp.json() == {"status": "ok", "database": "connected"}


@pytest.mark.asyncio
async def test_health_db_unreachable(client):
    async def _down():
        yield _DownSession()

    app.dependency_overrides[get_db] = _down
    resp = await client.get("/health/db")
    assert resp.status_code == 503
    assert resp.json() == {"status": "error", "database": "unavailable"}
