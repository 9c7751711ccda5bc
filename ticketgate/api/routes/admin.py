"""
Admin endpoints: password login and read-only dashboard feeds.
"""

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ticketgate.core.logging import get_logger
from ticketgate.core.security import ADMIN_SESSION_KEY, require_admin, verify_admin_password
from ticketgate.db.session import get_db
from ticketgate.schemas.admin import (
    AdminEventList,
    AdminEventResponse,
    AnalyticsResponse,
    ApiLogList,
    ApiLogResponse,
)
from ticketgate.services.admin_service import list_events, list_recent_logs, weekly_analytics

logger = get_logger(__name__)
router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/login")
async def admin_login(request: Request, password: str = Form("")):
    if not verify_admin_password(password):
        logger.warning("admin_login_failed")
        return JSONResponse({"error": "Invalid credentials"}, status_code=status.HTTP_401_UNAUTHORIZED)

    request.session[ADMIN_SESSION_KEY] = True
    logger.info("admin_logged_in")
    return RedirectResponse(url="/admin/events", status_code=status.HTTP_303_SEE_OTHER)


@router.post("/logout")
async def admin_logout(request: Request):
    request.session.clear()
    return {"ok": True}


@router.get("/events", response_model=AdminEventList, dependencies=[Depends(require_admin)])
async def admin_events(db: AsyncSession = Depends(get_db)):
    events = await list_events(db)
    return AdminEventList(events=[AdminEventResponse.model_validate(e) for e in events])


@router.get("/logs", response_model=ApiLogList, dependencies=[Depends(require_admin)])
async def admin_logs(db: AsyncSession = Depends(get_db)):
    logs = await list_recent_logs(db)
    return ApiLogList(logs=[ApiLogResponse.model_validate(log) for log in logs])


@router.get("/analytics", response_model=AnalyticsResponse, dependencies=[Depends(require_admin)])
async def admin_analytics(db: AsyncSession = Depends(get_db)):
    counts = await weekly_analytics(db)
    return AnalyticsResponse(**counts)
