"""
Public inventory status ("can I still buy?").

Fail-closed: any failure to read or find the event answers sold out. The
endpoint is unauthenticated, so it only ever reports two booleans, never the
raw sold/limit counts.
"""

from dataclasses import dataclass
from typing import ClassVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ticketgate.core.config import get_settings
from ticketgate.core.logging import get_logger
from ticketgate.core.metrics import record_status_query
from ticketgate.models.event import MAX_EVENT_ID, EventState, event_state
from ticketgate.services.inventory_service import get_inventory

logger = get_logger(__name__)


@dataclass(frozen=True)
class StockStatus:
    sold_out: bool
    low_stock: bool
    fail_closed: bool = False

    FAIL_CLOSED: ClassVar["StockStatus"]


StockStatus.FAIL_CLOSED = StockStatus(sold_out=True, low_stock=False, fail_closed=True)


def classify_stock(
    sold: int,
    limit: int,
    active: bool,
    low_remaining: int = 10,
    low_ratio: float = 0.2,
) -> StockStatus:
    """Threshold-based classification; `remaining` never leaves this function."""
    sold = sold or 0
    limit = limit or 0
    sold_out = event_state(active, sold, limit) != EventState.OPEN
    remaining = max(0, limit - sold)
    low_stock = not sold_out and (
        remaining <= low_remaining or remaining / max(1, limit) <= low_ratio
    )
    return StockStatus(sold_out=sold_out, low_stock=low_stock)


async def get_stock_status(db: AsyncSession, event_id) -> StockStatus:
    """Never raises. Unknown ids, bad ids and store errors all fail closed."""
    settings = get_settings()

    try:
        numeric_id = int(event_id)
    except (ValueError, TypeError):
        numeric_id = None
    if numeric_id is None or not 1 <= numeric_id <= MAX_EVENT_ID:
        logger.warning("status_fail_closed", event_id=event_id, reason="invalid_id")
        record_status_query(fail_closed=True)
        return StockStatus.FAIL_CLOSED

    try:
        event = await get_inventory(db, numeric_id)
    except Exception as e:
        # Any store or driver failure
        logger.error("status_fail_closed", event_id=event_id, reason="store_error", error=str(e))
        try:
            await db.rollback()
        except SQLAlchemyError as rollback_error:
            logger.warning("status_rollback_failed", error=str(rollback_error))
        record_status_query(fail_closed=True)
        return StockStatus.FAIL_CLOSED

    if event is None:
        logger.warning("status_fail_closed", event_id=event_id, reason="not_found")
        record_status_query(fail_closed=True)
        return StockStatus.FAIL_CLOSED

    status = classify_stock(
        event.tickets_sold,
        event.ticket_limit,
        event.is_active,
        low_remaining=settings.LOW_STOCK_REMAINING,
        low_ratio=settings.LOW_STOCK_RATIO,
    )
    record_status_query(fail_closed=False)
    logger.info("status_served", event_id=event_id, sold_out=status.sold_out, low_stock=status.low_stock)
    return status
