"""
Public inventory status endpoint, polled by event pages.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ticketgate.api.deps import admit_status
from ticketgate.core.errors import ValidationError
from ticketgate.db.session import get_db
from ticketgate.schemas.status import StatusResponse
from ticketgate.services.audit_service import ENDPOINT_STATUS, record_api_log
from ticketgate.services.status_service import get_stock_status

router = APIRouter(prefix="/status", tags=["Status"])


@router.get("", response_model=StatusResponse)
async def get_status(
    event_id: str | None = Query(None),
    client: str = Depends(admit_status),
    db: AsyncSession = Depends(get_db),
):
    """
    `{soldOut, lowStock}` for an event. Always 200 once admitted and given an
    id: unknown events and read failures answer sold out.
    """
    if not event_id:
        raise ValidationError("Missing event_id")

    status = await get_stock_status(db, event_id)

    await record_api_log(
        db,
        ENDPOINT_STATUS,
        "status fail-closed" if status.fail_closed else "status ok",
        level="warn" if status.fail_closed else "info",
        event_id=event_id,
    )
    return StatusResponse(sold_out=status.sold_out, low_stock=status.low_stock)
