"""
Audit log writer for the public endpoints.

Best effort: the audit row is an operator convenience, so a failed write is
logged and never changes the response the caller gets.
"""

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ticketgate.core.logging import get_logger
from ticketgate.models.api_log import ApiLog

logger = get_logger(__name__)

ENDPOINT_CHECKOUT = "/checkout"
ENDPOINT_STATUS = "/status"
ENDPOINT_WEBHOOK = "/payment-webhook"

MESSAGE_SESSION_CREATED = "session created"


async def record_api_log(
    db: AsyncSession,
    endpoint: str,
    message: str,
    level: str = "info",
    event_id: Optional[object] = None,
) -> None:
    try:
        db.add(ApiLog(
            endpoint=endpoint,
            level=level,
            event_id=None if event_id is None else str(event_id)[:64],
            message=message[:1000],
        ))
        await db.commit()
    except Exception as e:
        logger.warning("audit_write_failed", endpoint=endpoint, error=str(e))
        try:
            await db.rollback()
        except SQLAlchemyError as rollback_error:
            logger.warning("audit_rollback_failed", error=str(rollback_error))
