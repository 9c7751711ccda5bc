"""
Payment provider webhook.

The signature is checked against the raw body before any field is trusted.
Status codes drive the provider's redelivery:
  400  bad signature / malformed event, never fixed by retrying
  200  processed, deduplicated, ignored type, or paid-but-sold-out
  500  transient failure, redeliver later
"""

from typing import Mapping

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ticketgate.core.errors import SignatureInvalid
from ticketgate.core.logging import get_logger
from ticketgate.core.metrics import webhook_signature_failures
from ticketgate.db.session import get_db
from ticketgate.schemas.webhook import WebhookAck
from ticketgate.services.audit_service import ENDPOINT_WEBHOOK, record_api_log
from ticketgate.services.fulfillment_service import OUTCOME_SOLD_OUT, fulfill_payment
from ticketgate.services.interfaces.payment import PaymentProvider
from ticketgate.services.provider_factory import get_payment_provider

logger = get_logger(__name__)
router = APIRouter(tags=["Payments"])


async def process_webhook(
    db: AsyncSession,
    provider: PaymentProvider,
    payload: bytes,
    headers: Mapping[str, str],
) -> WebhookAck:
    try:
        event = provider.verify_webhook(payload, headers)
    except SignatureInvalid:
        webhook_signature_failures.inc()
        logger.warning("webhook_signature_invalid", provider=provider.name, body_bytes=len(payload))
        await record_api_log(db, ENDPOINT_WEBHOOK, "signature verification failed", level="warn")
        raise

    payment = provider.parse_completion(event)
    if payment is None:
        logger.info("webhook_ignored", provider=provider.name, event_type=event.get("type"))
        return WebhookAck(received=True)

    result = await fulfill_payment(db, payment)

    if result.outcome == OUTCOME_SOLD_OUT:
        await record_api_log(
            db,
            ENDPOINT_WEBHOOK,
            f"paid but not fulfilled ({result.reason}), refund required: session {payment.session_id}",
            level="error",
            event_id=payment.event_id,
        )
    else:
        await record_api_log(
            db,
            ENDPOINT_WEBHOOK,
            f"fulfillment {result.outcome}: session {payment.session_id}",
            event_id=payment.event_id,
        )
    return WebhookAck(received=True, outcome=result.outcome)


@router.post("/payment-webhook", response_model=WebhookAck, response_model_exclude_none=True)
async def payment_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    provider: PaymentProvider = Depends(get_payment_provider),
):
    payload = await request.body()
    return await process_webhook(db, provider, payload, request.headers)
