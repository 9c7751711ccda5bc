"""
Inventory store: the one atomic writer of `events.tickets_sold`.

CONCURRENCY STRATEGY: Guarded atomic UPDATE
===========================================

Problem:
  Two webhooks for the last ticket arrive together.
  Both read tickets_sold=99/100, both write 100. Or worse, both write 100 and
  both issue a ticket: oversold.

Solution:
  The capacity check and the increment are one statement:

    UPDATE events
       SET tickets_sold = tickets_sold + :q
     WHERE id = :event_id
       AND is_active
       AND tickets_sold + :q <= ticket_limit

  The UPDATE takes the row's write lock. A concurrent reserve on the same
  event blocks until the first transaction commits or rolls back, then
  re-evaluates the WHERE clause against the committed value. So committed
  reservations for one event are linearisable and their sum can never exceed
  ticket_limit. Reservations for different events never contend.

  If no row matched, we re-read the row to report why (not found, inactive,
  sold out). The CHECK constraint tickets_sold <= ticket_limit is the final
  safety net.

  reserve() runs inside the caller's transaction and does not commit: the
  fulfillment processor commits the reservation together with its ledger row
  and tickets, or rolls all three back.

The advisory check_capacity() is a plain read. It lets checkout fail fast but
never holds or consumes capacity.
"""

import time
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ticketgate.core.errors import EventInactive, EventNotFound, SoldOut, ValidationError
from ticketgate.core.logging import get_logger
from ticketgate.core.metrics import record_reservation, reservation_latency
from ticketgate.models.event import Event, EventState, event_state

logger = get_logger(__name__)

REJECT_SOLD_OUT = "sold_out"
REJECT_INACTIVE = "inactive"
REJECT_NOT_FOUND = "not_found"


@dataclass(frozen=True)
class ReserveResult:
    ok: bool
    new_sold_count: Optional[int] = None
    reason: Optional[str] = None


async def reserve(db: AsyncSession, event_id: int, quantity: int) -> ReserveResult:
    """
    Atomically consume `quantity` tickets of `event_id` capacity.
    Must be committed (or rolled back) by the caller.
    """
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")

    start = time.perf_counter()
    result = await db.execute(
        update(Event)
        .where(
            Event.id == event_id,
            Event.is_active.is_(True),
            Event.tickets_sold + quantity <= Event.ticket_limit,
        )
        .values(tickets_sold=Event.tickets_sold + quantity)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 1:
        new_sold = (
            await db.execute(select(Event.tickets_sold).where(Event.id == event_id))
        ).scalar_one()
        reservation_latency.observe(time.perf_counter() - start)
        record_reservation("ok")
        logger.info(
            "reservation_committed",
            event_id=event_id,
            quantity=quantity,
            tickets_sold=new_sold,
        )
        return ReserveResult(ok=True, new_sold_count=new_sold)

    # Nothing matched: find out why
    row = (
        await db.execute(
            select(Event.is_active, Event.tickets_sold, Event.ticket_limit).where(Event.id == event_id)
        )
    ).first()
    if row is None:
        reason = REJECT_NOT_FOUND
    elif event_state(row.is_active, row.tickets_sold, row.ticket_limit) == EventState.INACTIVE:
        reason = REJECT_INACTIVE
    else:
        # Open but without enough headroom for this quantity
        reason = REJECT_SOLD_OUT

    reservation_latency.observe(time.perf_counter() - start)
    record_reservation(reason)
    logger.warning(
        "reservation_rejected",
        event_id=event_id,
        quantity=quantity,
        reason=reason,
    )
    return ReserveResult(ok=False, reason=reason)


async def get_inventory(db: AsyncSession, event_id: int) -> Optional[Event]:
    """Read path for status and admin views. Always reads committed state."""
    result = await db.execute(
        select(Event).where(Event.id == event_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def check_capacity(db: AsyncSession, event_id: int, quantity: int) -> Event:
    """
    Advisory pre-check for checkout. Does not reserve anything.
    Raises EventNotFound, EventInactive or SoldOut.
    """
    event = await get_inventory(db, event_id)
    if event is None:
        raise EventNotFound(event_id)

    if not event.is_active:
        raise EventInactive(event_id)

    if event.tickets_sold + quantity > event.ticket_limit:
        raise SoldOut(event_id)

    return event
