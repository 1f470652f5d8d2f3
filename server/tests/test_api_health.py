"""Operational endpoints exercised through the production application factory."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from tourism_api.main import create_app


@pytest_asyncio.fixture
async def app_client():
    """Client for create_app() itself, so middleware and handlers are the deployed ones."""
    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
async def test_liveness_and_readiness(app_client):
    response = await app_client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "tourism-booking-api"
    assert data["environment"] == "development"

    response = await app_client.get("/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready", "service": "tourism-booking-api", "checks": {"database": "ok"}}


@pytest.mark.asyncio
async def test_info_reports_booking_defaults(app_client):
    response = await app_client.get("/info")

    assert response.status_code == 200
    data = response.json()
    assert data["booking"]["bookingTypes"] == ["property", "flight", "service"]
    assert data["booking"]["defaultCurrency"] == "VUV"
    assert data["booking"]["taxRatePercent"] == 15.0
    assert data["booking"]["maxPageSize"] == 100
    assert data["features"]["geoSearch"] is True
    assert data["endpoints"]["docs"] == "/docs"


@pytest.mark.asyncio
async def test_metrics_can_be_narrowed_by_name(app_client):
    await app_client.get("/health")

    response = await app_client.get("/metrics")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "http_requests_total" in response.text

    response = await app_client.get("/metrics", params={"name[]": "catalog_searches_total"})
    assert response.status_code == 200
    assert "http_requests_total" not in response.text


@pytest.mark.asyncio
async def test_openapi_docs_in_development(app_client):
    response = await app_client.get("/docs")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_validation_errors_use_problem_details(app_client):
    """Malformed bodies are reported as 400 problem documents with a request id."""
    response = await app_client.post("/api/auth/login", json={})

    assert response.status_code == 400
    data = response.json()
    assert data["title"] == "Validation Error"
    assert {violation["path"] for violation in data["violations"]} == {"email", "password"}
    assert response.headers["X-Request-ID"]
