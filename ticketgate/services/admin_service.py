"""
Read-only queries behind the admin dashboard.
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ticketgate.models.api_log import ApiLog
from ticketgate.models.event import Event
from ticketgate.models.ticket import Ticket
from ticketgate.services.audit_service import (
    ENDPOINT_CHECKOUT,
    ENDPOINT_STATUS,
    MESSAGE_SESSION_CREATED,
)

ADMIN_LIST_LIMIT = 50
ANALYTICS_WINDOW = timedelta(days=7)


async def list_events(db: AsyncSession, limit: int = ADMIN_LIST_LIMIT) -> list[Event]:
    result = await db.execute(
        select(Event).order_by(Event.date.asc()).limit(limit)
    )
    return list(result.scalars().all())


async def list_recent_logs(db: AsyncSession, limit: int = ADMIN_LIST_LIMIT) -> list[ApiLog]:
    result = await db.execute(
        select(ApiLog).order_by(ApiLog.created_at.desc(), ApiLog.id.desc()).limit(limit)
    )
    return list(result.scalars().all())


async def weekly_analytics(db: AsyncSession, now: datetime | None = None) -> dict:
    """Counts over the trailing seven days."""
    since = (now or datetime.now(timezone.utc)) - ANALYTICS_WINDOW

    status_checks = await db.scalar(
        select(func.count(ApiLog.id)).where(
            ApiLog.endpoint == ENDPOINT_STATUS,
            ApiLog.created_at >= since,
        )
    )
    checkout_created = await db.scalar(
        select(func.count(ApiLog.id)).where(
            ApiLog.endpoint == ENDPOINT_CHECKOUT,
            ApiLog.message.ilike(f"%{MESSAGE_SESSION_CREATED}%"),
            ApiLog.created_at >= since,
        )
    )
    tickets_issued = await db.scalar(
        select(func.count(Ticket.id)).where(Ticket.created_at >= since)
    )

    return {
        "status_checks_7d": status_checks or 0,
        "checkout_created_7d": checkout_created or 0,
        "tickets_issued_7d": tickets_issued or 0,
    }
