"""
Fulfillment: issue tickets once per confirmed payment.

IDEMPOTENCY STRATEGY
====================

The provider delivers "payment completed" at least once, possibly twice in
parallel. We want exactly one batch of tickets and exactly one increment of
tickets_sold per payment session.

  1. Fast path: if the ledger already holds this session id -> "deduped", no
     writes at all.
  2. One transaction:
       a. INSERT the ledger row (UNIQUE payment_session_id)
       b. reserve(event_id, quantity)       -- guarded atomic UPDATE
       c. INSERT `quantity` tickets
       d. COMMIT
     A parallel duplicate that slipped past step 1 fails at (a) with an
     IntegrityError (its insert waits on ours and then conflicts), rolls back
     and reports "deduped". Because (a)-(c) share one transaction, a loser
     never keeps its reservation.

Reserve rejection (sold out / inactive) rolls everything back and is
ACKNOWLEDGED, not retried: the provider has already captured the payment and
redelivering the same notification will not create capacity. This is the
"paid but sold out" case; it is logged at error level and written to the audit
log for an operator to refund. No ledger row is kept, so if an operator raises
the limit and the provider redelivers, the purchase can still be fulfilled.

Any other database failure raises UpstreamFailure so the webhook answers 500
and the provider redelivers later.
"""

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ticketgate.core.errors import UpstreamFailure
from ticketgate.core.logging import get_logger
from ticketgate.core.metrics import record_fulfillment
from ticketgate.models.fulfillment import Fulfillment
from ticketgate.models.ticket import Ticket, TICKET_STATUS_PAID
from ticketgate.services.interfaces.payment import PaymentCompleted
from ticketgate.services.inventory_service import reserve

logger = get_logger(__name__)

OUTCOME_ISSUED = "issued"
OUTCOME_DEDUPED = "deduped"
OUTCOME_SOLD_OUT = "sold_out"


@dataclass(frozen=True)
class FulfillmentResult:
    outcome: str
    tickets_issued: int = 0
    reason: str | None = None
    received: bool = True


async def is_fulfilled(db: AsyncSession, session_id: str) -> bool:
    result = await db.execute(
        select(Fulfillment.id).where(Fulfillment.payment_session_id == session_id).limit(1)
    )
    return result.first() is not None


async def fulfill_payment(db: AsyncSession, payment: PaymentCompleted) -> FulfillmentResult:
    """Apply a verified payment completion exactly once."""
    log = logger.bind(
        session_id=payment.session_id,
        event_id=payment.event_id,
        quantity=payment.quantity,
    )

    try:
        if await is_fulfilled(db, payment.session_id):
            await db.rollback()
            record_fulfillment(OUTCOME_DEDUPED)
            log.info("fulfillment_deduped", stage="lookup")
            return FulfillmentResult(outcome=OUTCOME_DEDUPED)
        await db.rollback()

        db.add(Fulfillment(
            payment_session_id=payment.session_id,
            event_id=payment.event_id,
            quantity=payment.quantity,
        ))
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            if await is_fulfilled(db, payment.session_id):
                # A concurrent delivery of the same session won the ledger insert
                await db.rollback()
                record_fulfillment(OUTCOME_DEDUPED)
                log.info("fulfillment_deduped", stage="ledger_insert")
                return FulfillmentResult(outcome=OUTCOME_DEDUPED)
            await db.rollback()
            # Only the event foreign key is left to violate
            record_fulfillment(OUTCOME_SOLD_OUT)
            log.error("paid_but_sold_out", reason="not_found", action="refund_required")
            return FulfillmentResult(outcome=OUTCOME_SOLD_OUT, reason="not_found")

        reservation = await reserve(db, payment.event_id, payment.quantity)
        if not reservation.ok:
            await db.rollback()
            record_fulfillment(OUTCOME_SOLD_OUT)
            log.error(
                "paid_but_sold_out",
                reason=reservation.reason,
                purchaser_email=payment.purchaser_email,
                action="refund_required",
            )
            return FulfillmentResult(outcome=OUTCOME_SOLD_OUT, reason=reservation.reason)

        db.add_all([
            Ticket(
                event_id=payment.event_id,
                purchaser_email=payment.purchaser_email or None,
                payment_session_id=payment.session_id,
                unit_index=unit,
                status=TICKET_STATUS_PAID,
                checked_in=False,
            )
            for unit in range(payment.quantity)
        ])
        await db.commit()

    except IntegrityError as e:
        await db.rollback()
        # Ticket uniqueness guard fired: another delivery committed this batch
        if await is_fulfilled(db, payment.session_id):
            await db.rollback()
            record_fulfillment(OUTCOME_DEDUPED)
            log.info("fulfillment_deduped", stage="ticket_insert")
            return FulfillmentResult(outcome=OUTCOME_DEDUPED)
        record_fulfillment("error")
        log.error("fulfillment_failed", error=str(e))
        raise UpstreamFailure("Failed to create tickets")
    except SQLAlchemyError as e:
        await db.rollback()
        record_fulfillment("error")
        log.error("fulfillment_failed", error=str(e))
        raise UpstreamFailure("Failed to fulfill payment")

    record_fulfillment(OUTCOME_ISSUED)
    log.info("tickets_issued", tickets_sold=reservation.new_sold_count)
    return FulfillmentResult(outcome=OUTCOME_ISSUED, tickets_issued=payment.quantity)
