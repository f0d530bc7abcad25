"""Unit tests for health endpoints."""

import pytest

from conftest import TRAVEL_DATE


@pytest.mark.asyncio
async def test_health_check(test_client):
    """Test the health check endpoint."""
    response = await test_client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "railbook-api"
    assert "version" in data


@pytest.mark.asyncio
async def test_ready_check(test_client):
    """Test the readiness check endpoint."""
    response = await test_client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"] == {"booking_engine": "ok", "database": "ok"}


@pytest.mark.asyncio
async def test_info_endpoint(test_client):
    """Test the service info endpoint."""
    response = await test_client.get("/info")
    assert response.status_code == 200
    data = response.json()
    assert "service" in data
    assert "version" in data
    assert "features" in data
    assert data["booking"]["booking_fee_amount"] == 5000


@pytest.mark.asyncio
async def test_health_ping_rpc(test_client):
    """Test the RPC-style health ping endpoint."""
    response = await test_client.post("/v1/health/ping", json={})
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "timestamp" in data
    assert data["service"] == "railbook-api"
    assert data["held_reservations"] == 0


@pytest.mark.asyncio
async def test_health_ping_counts_held_reservations(test_client, booking_engine, train):
    await booking_engine.create_booking("user-1", train.id, TRAVEL_DATE, "second", 2)

    response = await test_client.post("/v1/health/ping", json={})
    assert response.json()["held_reservations"] == 1


@pytest.mark.asyncio
async def test_request_id_echoed(test_client):
    """Test that a caller-supplied request ID comes back in the response."""
    response = await test_client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"

    response = await test_client.get("/health")
    assert response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_metrics_endpoint(test_client, booking_engine, train):
    """Test the Prometheus metrics endpoint after some booking activity."""
    await booking_engine.create_booking("user-1", train.id, TRAVEL_DATE, "second", 1)

    response = await test_client.get("/metrics")
    assert response.status_code == 200
    assert "bookings_created_total" in response.text
    assert response.headers["content-type"].startswith("text/plain")
