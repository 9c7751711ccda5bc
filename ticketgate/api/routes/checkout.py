"""
Checkout initiation endpoint, called from third-party event pages.

The body is read inside the handler, after the rate gate has admitted the
caller.
"""

import json

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ticketgate.api.deps import admit_checkout
from ticketgate.core.errors import TicketingError, ValidationError
from ticketgate.db.session import get_db
from ticketgate.schemas.checkout import CheckoutCreate, CheckoutResponse
from ticketgate.services.audit_service import (
    ENDPOINT_CHECKOUT,
    MESSAGE_SESSION_CREATED,
    record_api_log,
)
from ticketgate.services.checkout_service import build_checkout_request, initiate_checkout
from ticketgate.services.interfaces.payment import PaymentProvider
from ticketgate.services.provider_factory import get_payment_provider
from ticketgate.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/checkout", tags=["Checkout"])


async def read_checkout_body(request: Request) -> CheckoutCreate:
    """Decode and shape-check the JSON body. Raises ValidationError."""
    try:
        data = json.loads(await request.body() or b"{}")
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.info("checkout_body_invalid", reason="json")
        raise ValidationError("Invalid request body")
    if not isinstance(data, dict):
        raise ValidationError("Invalid request body")
    try:
        return CheckoutCreate.model_validate(data)
    except SchemaValidationError:
        logger.info("checkout_body_invalid", reason="schema")
        raise ValidationError("Invalid request body")


@router.post(
    "",
    response_model=CheckoutResponse,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": CheckoutCreate.model_json_schema()}},
        }
    },
)
async def create_checkout(
    request: Request,
    client: str = Depends(admit_checkout),
    db: AsyncSession = Depends(get_db),
    provider: PaymentProvider = Depends(get_payment_provider),
):
    """
    Create a hosted payment session for up to MAX_TICKETS_PER_ORDER tickets.

    The capacity check here is advisory; tickets are only reserved when the
    provider confirms payment through the webhook.
    """
    payload = await read_checkout_body(request)
    try:
        checkout_request = build_checkout_request(
            payload.event_id,
            payload.quantity,
            payload.purchaser_email,
        )
        session = await initiate_checkout(db, provider, checkout_request)
    except TicketingError as e:
        await record_api_log(
            db,
            ENDPOINT_CHECKOUT,
            f"checkout rejected: {e.code.value}",
            level="warn" if e.status_code < 500 else "error",
            event_id=payload.event_id,
        )
        raise

    await record_api_log(
        db,
        ENDPOINT_CHECKOUT,
        f"{MESSAGE_SESSION_CREATED} {session.session_id}",
        event_id=checkout_request.event_id,
    )
    return CheckoutResponse(url=session.url)
