"""
Tests for checkout initiation: validation, the advisory capacity check,
provider failures, rate limiting and CORS on the public endpoint.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from ticketgate.main import app
from ticketgate.api.deps import get_checkout_gate
from ticketgate.core.errors import UpstreamFailure, ValidationError
from ticketgate.models import ApiLog
from ticketgate.services.checkout_service import build_checkout_request, parse_quantity
from ticketgate.services.rate_gate import RateGate

from tests.fakes import ALLOWED_ORIGIN


@pytest.mark.parametrize("raw,expected", [(1, 1), (10, 10), ("3", 3), (4.0, 4), (" 2 ", 2)])
def test_parse_quantity_accepts(raw, expected):
    assert parse_quantity(raw, 10) == expected


@pytest.mark.parametrize("raw", [0, -1, 11, 2.5, "abc", "", None, True, False, float("nan"), float("inf"), [2]])
def test_parse_quantity_rejects(raw):
    with pytest.raises(ValidationError):
        parse_quantity(raw, 10)


def test_build_checkout_request_normalises_input():
    request = build_checkout_request("42", "2", "  fan@example.com ")
    assert request.event_id == 42
    assert request.quantity == 2
    assert request.purchaser_email == "fan@example.com"


@pytest.mark.parametrize("raw", [None, "", "abc", 0, -5, True, 2**31, "9" * 30])
def test_build_checkout_request_rejects_event_id(raw):
    with pytest.raises(ValidationError):
        build_checkout_request(raw, 1)


@pytest.mark.asyncio
async def test_checkout_returns_payment_url(client: AsyncClient, make_event, read_event, mockpay):
    """Session is created, capacity is not consumed."""
    event = await make_event(ticket_limit=10, tickets_sold=4)

    response = await client.post(
        "/checkout",
        json={"event_id": event.id, "quantity": 2, "purchaser_email": "fan@example.com"},
    )

    assert response.status_code == 200
    url = response.json()["url"]
    assert url.startswith("http://test/mockpay/mock_")
    assert (await read_event(event.id)).tickets_sold == 4

    session_id = url.rsplit("/", 1)[-1]
    assert mockpay.sessions[session_id] == {
        "event_id": str(event.id),
        "quantity": "2",
        "purchaser_email": "fan@example.com",
    }


@pytest.mark.asyncio
async def test_checkout_defaults_quantity_to_one(client: AsyncClient, make_event, mockpay):
    event = await make_event()

    response = await client.post("/checkout", json={"event_id": str(event.id)})

    assert response.status_code == 200
    session_id = response.json()["url"].rsplit("/", 1)[-1]
    assert mockpay.sessions[session_id]["quantity"] == "1"


@pytest.mark.asyncio
async def test_checkout_unknown_event(client: AsyncClient):
    response = await client.post("/checkout", json={"event_id": 999999, "quantity": 1})

    assert response.status_code == 404
    assert response.json() == {"error": "Event not found"}


@pytest.mark.asyncio
async def test_checkout_inactive_event(client: AsyncClient, make_event):
    event = await make_event(is_active=False)

    response = await client.post("/checkout", json={"event_id": event.id, "quantity": 1})

    assert response.status_code == 400
    assert response.json() == {"error": "Event is inactive"}


@pytest.mark.asyncio
async def test_checkout_insufficient_capacity(client: AsyncClient, make_event, mockpay):
    event = await make_event(ticket_limit=10, tickets_sold=9)

    response = await client.post("/checkout", json={"event_id": event.id, "quantity": 2})

    assert response.status_code == 400
    assert response.json() == {"error": "Sold out"}
    assert mockpay.sessions == {}


@pytest.mark.asyncio
@pytest.mark.parametrize("quantity", [0, 11, "abc", 2.5, True, None])
async def test_checkout_invalid_quantity(client: AsyncClient, make_event, mockpay, quantity):
    event = await make_event()

    response = await client.post("/checkout", json={"event_id": event.id, "quantity": quantity})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid quantity (must be 1-10)"}
    assert mockpay.sessions == {}


@pytest.mark.asyncio
async def test_checkout_missing_event_id(client: AsyncClient):
    response = await client.post("/checkout", json={"quantity": 1})

    assert response.status_code == 400
    assert response.json() == {"error": "Missing event_id"}


@pytest.mark.asyncio
async def test_checkout_malformed_body(client: AsyncClient):
    response = await client.post(
        "/checkout",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_checkout_provider_failure(client: AsyncClient, make_event, mockpay, monkeypatch):
    """Provider errors surface as a generic 500 with no capacity consumed."""
    event = await make_event(ticket_limit=10)

    async def failing_create(**kwargs):
        raise UpstreamFailure("Server error")

    monkeypatch.setattr(mockpay, "create_checkout_session", failing_create)

    response = await client.post("/checkout", json={"event_id": event.id, "quantity": 1})

    assert response.status_code == 500
    assert response.json() == {"error": "Server error"}


@pytest.mark.asyncio
async def test_checkout_writes_audit_rows(client: AsyncClient, make_event, session_factory):
    event = await make_event(ticket_limit=1, tickets_sold=1)
    open_event = await make_event(ticket_limit=10)

    await client.post("/checkout", json={"event_id": event.id, "quantity": 1})
    await client.post("/checkout", json={"event_id": open_event.id, "quantity": 1})

    async with session_factory() as session:
        logs = (await session.execute(select(ApiLog).order_by(ApiLog.id))).scalars().all()

    assert len(logs) == 2
    assert logs[0].level == "warn"
    assert logs[0].message == "checkout rejected: sold_out"
    assert logs[1].level == "info"
    assert logs[1].message.startswith("session created mock_")
    assert logs[1].event_id == str(open_event.id)


@pytest.mark.asyncio
async def test_checkout_rate_limited(client: AsyncClient, make_event):
    gate = RateGate(2, 300, name="checkout")
    app.dependency_overrides[get_checkout_gate] = lambda: gate
    event = await make_event()

    for _ in range(2):
        response = await client.post("/checkout", json={"event_id": event.id, "quantity": 1})
        assert response.status_code == 200

    response = await client.post("/checkout", json={"event_id": event.id, "quantity": 1})

    assert response.status_code == 429
    assert 1 <= int(response.headers["Retry-After"]) <= 300
    assert response.json()["retryAfterSec"] == int(response.headers["Retry-After"])


@pytest.mark.asyncio
async def test_rate_limit_applies_before_validation(client: AsyncClient):
    gate = RateGate(1, 300, name="checkout")
    app.dependency_overrides[get_checkout_gate] = lambda: gate

    assert (await client.post("/checkout", json={"quantity": 1})).status_code == 400
    assert (await client.post("/checkout", json={"quantity": 1})).status_code == 429


@pytest.mark.asyncio
async def test_cors_allowed_origin_is_echoed(client: AsyncClient, make_event):
    event = await make_event()

    response = await client.post(
        "/checkout",
        json={"event_id": event.id, "quantity": 1},
        headers={"Origin": ALLOWED_ORIGIN},
    )

    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Origin"] == ALLOWED_ORIGIN
    assert response.headers["Vary"] == "Origin"


@pytest.mark.asyncio
async def test_cors_other_origin_gets_null(client: AsyncClient, make_event):
    event = await make_event()

    response = await client.get(
        "/status",
        params={"event_id": event.id},
        headers={"Origin": "https://evil.example.net"},
    )

    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Origin"] == "null"


@pytest.mark.asyncio
async def test_cors_headers_on_error_responses(client: AsyncClient):
    response = await client.post(
        "/checkout",
        json={"event_id": 999999},
        headers={"Origin": ALLOWED_ORIGIN},
    )

    assert response.status_code == 404
    assert response.headers["Access-Control-Allow-Origin"] == ALLOWED_ORIGIN


@pytest.mark.asyncio
async def test_cors_preflight(client: AsyncClient):
    response = await client.options(
        "/checkout",
        headers={"Origin": ALLOWED_ORIGIN, "Access-Control-Request-Method": "POST"},
    )

    assert response.status_code == 204
    assert response.headers["Access-Control-Allow-Origin"] == ALLOWED_ORIGIN
    assert response.headers["Access-Control-Allow-Methods"] == "GET,POST,OPTIONS"
    assert response.headers["Access-Control-Allow-Headers"] == "Content-Type"
    assert response.headers["Access-Control-Max-Age"] == "86400"


@pytest.mark.asyncio
async def test_cors_not_applied_to_webhook(client: AsyncClient):
    response = await client.options("/payment-webhook", headers={"Origin": ALLOWED_ORIGIN})

    assert "Access-Control-Allow-Origin" not in response.headers


@pytest.mark.asyncio
async def test_checkout_event_id_beyond_column_range(client: AsyncClient, mockpay):
    """Ids that cannot exist are rejected before reaching the store."""
    response = await client.post(
        "/checkout",
        json={"event_id": 2**70, "quantity": 1},
        headers={"Origin": ALLOWED_ORIGIN},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid event_id"}
    assert response.headers["Access-Control-Allow-Origin"] == ALLOWED_ORIGIN
    assert mockpay.sessions == {}


@pytest.mark.asyncio
async def test_malformed_bodies_are_rate_limited(client: AsyncClient):
    gate = RateGate(1, 300, name="checkout")
    app.dependency_overrides[get_checkout_gate] = lambda: gate
    headers = {"Content-Type": "application/json"}

    first = await client.post("/checkout", content=b"{bad", headers=headers)
    second = await client.post("/checkout", content=b"{bad", headers=headers)

    assert first.status_code == 400
    assert first.json() == {"error": "Invalid request body"}
    assert second.status_code == 429
    assert len(gate) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [b"[1, 2]", b'"event"', b'{"purchaser_email": 42}'])
async def test_checkout_rejects_non_object_bodies(client: AsyncClient, body):
    response = await client.post("/checkout", content=body, headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request body"}
