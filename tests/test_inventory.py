"""
Tests for the atomic reserve and the advisory capacity check,
including concurrent reservations against one event.
"""

import asyncio
import random

import pytest
from sqlalchemy.exc import InvalidRequestError

from ticketgate.core.errors import EventInactive, EventNotFound, SoldOut, ValidationError
from ticketgate.models.event import EventState, event_state
from ticketgate.services.inventory_service import check_capacity, reserve


async def _reserve_in_own_session(session_factory, event_id: int, quantity: int):
    async with session_factory() as session:
        result = await reserve(session, event_id, quantity)
        await session.commit()
        return quantity, result


@pytest.mark.asyncio
async def test_reserve_increments_sold(db_session, make_event, read_event):
    event = await make_event(ticket_limit=10, tickets_sold=2)

    result = await reserve(db_session, event.id, 3)
    await db_session.commit()

    assert result.ok is True
    assert result.new_sold_count == 5
    assert (await read_event(event.id)).tickets_sold == 5


@pytest.mark.asyncio
async def test_reserve_exact_remaining_capacity(db_session, make_event, read_event):
    event = await make_event(ticket_limit=10, tickets_sold=7)

    result = await reserve(db_session, event.id, 3)
    await db_session.commit()

    assert result.ok is True
    assert (await read_event(event.id)).tickets_sold == 10


@pytest.mark.asyncio
async def test_reserve_rejects_over_capacity(db_session, make_event, read_event):
    """A quantity that does not fit is rejected and writes nothing."""
    event = await make_event(ticket_limit=10, tickets_sold=8)

    result = await reserve(db_session, event.id, 3)
    await db_session.commit()

    assert result.ok is False
    assert result.reason == "sold_out"
    assert (await read_event(event.id)).tickets_sold == 8


@pytest.mark.asyncio
async def test_reserve_rejects_inactive_event(db_session, make_event, read_event):
    event = await make_event(ticket_limit=10, tickets_sold=2, is_active=False)

    result = await reserve(db_session, event.id, 1)
    await db_session.commit()

    assert result.ok is False
    assert result.reason == "inactive"
    assert (await read_event(event.id)).tickets_sold == 2


@pytest.mark.asyncio
async def test_reserve_unknown_event(db_session):
    result = await reserve(db_session, 99999, 1)

    assert result.ok is False
    assert result.reason == "not_found"


@pytest.mark.asyncio
async def test_reserve_rejects_non_positive_quantity(db_session, make_event):
    event = await make_event()

    with pytest.raises(ValidationError):
        await reserve(db_session, event.id, 0)


@pytest.mark.asyncio
async def test_rolled_back_reserve_releases_nothing(db_session, make_event, read_event):
    """reserve() does not commit on its own."""
    event = await make_event(ticket_limit=5)

    result = await reserve(db_session, event.id, 2)
    await db_session.rollback()

    assert result.ok is True
    assert (await read_event(event.id)).tickets_sold == 0


@pytest.mark.asyncio
async def test_two_racers_for_the_last_ticket(session_factory, make_event, read_event):
    """limit=1: exactly one of two concurrent reservations wins."""
    event = await make_event(ticket_limit=1)

    results = await asyncio.gather(
        _reserve_in_own_session(session_factory, event.id, 1),
        _reserve_in_own_session(session_factory, event.id, 1),
    )

    outcomes = sorted("ok" if r.ok else r.reason for _, r in results)
    assert outcomes == ["ok", "sold_out"]
    assert (await read_event(event.id)).tickets_sold == 1


@pytest.mark.asyncio
async def test_concurrent_reservations_never_oversell(session_factory, make_event, read_event):
    """The accepted quantities sum to tickets_sold and never exceed the limit."""
    event = await make_event(ticket_limit=20)
    rng = random.Random(7)
    quantities = [rng.randint(1, 3) for _ in range(20)]

    results = await asyncio.gather(
        *(_reserve_in_own_session(session_factory, event.id, q) for q in quantities)
    )

    accepted = sum(q for q, r in results if r.ok)
    assert accepted <= 20
    assert (await read_event(event.id)).tickets_sold == accepted
    assert all(r.reason == "sold_out" for _, r in results if not r.ok)
    # Total demand exceeds supply, so the event must end up (nearly) full
    assert accepted > 20 - 3


@pytest.mark.asyncio
async def test_check_capacity_passes_without_reserving(db_session, make_event, read_event):
    event = await make_event(ticket_limit=10, tickets_sold=5)

    checked = await check_capacity(db_session, event.id, 5)
    checked_id = checked.id
    await db_session.rollback()

    assert checked_id == event.id
    assert (await read_event(event.id)).tickets_sold == 5


@pytest.mark.asyncio
async def test_check_capacity_errors(db_session, make_event):
    inactive = await make_event(is_active=False)
    full = await make_event(ticket_limit=3, tickets_sold=2)

    with pytest.raises(EventNotFound):
        await check_capacity(db_session, 99999, 1)
    with pytest.raises(EventInactive):
        await check_capacity(db_session, inactive.id, 1)
    with pytest.raises(SoldOut):
        await check_capacity(db_session, full.id, 2)


@pytest.mark.parametrize(
    "is_active,sold,limit,expected",
    [
        (True, 0, 10, EventState.OPEN),
        (True, 9, 10, EventState.OPEN),
        (True, 10, 10, EventState.SOLD_OUT),
        (False, 2, 10, EventState.INACTIVE),
        (False, 10, 10, EventState.INACTIVE),
    ],
)
def test_event_state(is_active, sold, limit, expected):
    assert event_state(is_active, sold, limit) == expected


@pytest.mark.asyncio
async def test_event_tickets_are_never_lazy_loaded(make_event):
    """Inventory reads never pull the ticket rows along."""
    event = await make_event()

    with pytest.raises(InvalidRequestError):
        event.tickets
