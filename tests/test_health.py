"""Health and smoke-test endpoints."""

from httpx import AsyncClient


async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Synonym Trainer API is running"
    assert body["environment"] == "development"
    assert "timestamp" in body


async def test_ready(client: AsyncClient) -> None:
    response = await client.get("/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready", "checks": {"database": "ok"}}


async def test_api_test(client: AsyncClient) -> None:
    response = await client.get("/api/test")
    assert response.status_code == 200
    assert response.json()["message"] == "API is working!"
