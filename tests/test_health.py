"""
Tests for the operational endpoints and request correlation headers.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert len(response.headers["X-Request-ID"]) == 8
    assert response.headers["X-Response-Time"].endswith("ms")


@pytest.mark.asyncio
async def test_upstream_request_id_is_reused(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "lb-4f2a9c"})
    assert response.headers["X-Request-ID"] == "lb-4f2a9c"


@pytest.mark.asyncio
async def test_garbage_request_id_is_replaced(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "bad id with spaces"})
    assert response.headers["X-Request-ID"] != "bad id with spaces"


@pytest.mark.asyncio
async def test_metrics_exposition(client: AsyncClient, make_event):
    event = await make_event()
    await client.get("/status", params={"event_id": event.id})

    response = await client.get("/metrics")

    assert response.status_code == 200
    assert "status_queries_total" in response.text
    assert "admission_requests_total" in response.text
