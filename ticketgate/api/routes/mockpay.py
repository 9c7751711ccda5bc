"""
MockPay pages for local development (PAYMENT_PROVIDER=mock).

`POST /mockpay/{session_id}/complete` plays the provider: it signs a
completion event for the session and feeds it through the real webhook path.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ticketgate.api.routes.webhook import process_webhook
from ticketgate.db.session import get_db
from ticketgate.schemas.webhook import WebhookAck
from ticketgate.services.interfaces.payment import PaymentProvider
from ticketgate.services.mockpay_provider import SIGNATURE_HEADER, MockPayProvider
from ticketgate.services.provider_factory import get_payment_provider

router = APIRouter(prefix="/mockpay", tags=["MockPay"])


def get_mockpay(provider: PaymentProvider = Depends(get_payment_provider)) -> MockPayProvider:
    if not isinstance(provider, MockPayProvider):
        raise HTTPException(404, detail="Not found")
    return provider


@router.get("/{session_id}")
async def mockpay_session(session_id: str, mockpay: MockPayProvider = Depends(get_mockpay)):
    metadata = mockpay.sessions.get(session_id)
    if metadata is None:
        raise HTTPException(404, detail="payment session not found")
    return {
        "session_id": session_id,
        **metadata,
        "complete_url": f"/mockpay/{session_id}/complete",
    }


@router.post("/{session_id}/complete", response_model=WebhookAck, response_model_exclude_none=True)
async def mockpay_complete(
    session_id: str,
    mockpay: MockPayProvider = Depends(get_mockpay),
    db: AsyncSession = Depends(get_db),
):
    payload = mockpay.build_completion_event(session_id)
    if payload is None:
        raise HTTPException(404, detail="payment session not found")
    headers = {SIGNATURE_HEADER: mockpay.sign(payload)}
    return await process_webhook(db, mockpay, payload, headers)
