"""
Tests for the always-available endpoints and database availability.
"""
import pytest
from httpx import ASGITransport, AsyncClient

from marketplace.config.database import DatabaseManager
from marketplace.main import app

pytestmark = pytest.mark.api


@pytest.fixture
async def bare_client():
    """A client with no database behind it."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def test_root(bare_client):
    response = await bare_client.get("/")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "running"
    assert body["docs"] == "/docs"
    assert body["health"] == "/health"


async def test_health_without_database(bare_client):
    response = await bare_client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["database"] == "disconnected"


async def test_data_routes_need_database(bare_client):
    response = await bare_client.get("/categories")
    assert response.status_code == 503


@pytest.mark.unit
def test_manager_requires_connection():
    manager = DatabaseManager()
    assert manager.is_connected() is False
    with pytest.raises(RuntimeError):
        manager.get_database()
