"""
Checkout initiation.

Validates the request, runs the advisory capacity check and asks the payment
provider for a hosted checkout session. Capacity is NOT reserved here: the
buyer may abandon the payment page, and reserving now would need a release
path. The authoritative reserve happens in the fulfillment processor once the
provider confirms payment. The cost of this optimistic policy is the rare
"paid but sold out" case, handled there.
"""

from dataclasses import dataclass
from numbers import Number

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ticketgate.core.config import get_settings
from ticketgate.core.errors import TicketingError, UpstreamFailure, ValidationError
from ticketgate.core.logging import get_logger
from ticketgate.core.metrics import record_checkout
from ticketgate.services.interfaces.payment import CheckoutSession, PaymentProvider
from ticketgate.models.event import MAX_EVENT_ID
from ticketgate.services.inventory_service import check_capacity

logger = get_logger(__name__)


@dataclass(frozen=True)
class CheckoutRequest:
    event_id: int
    quantity: int
    purchaser_email: str = ""


def parse_event_id(raw) -> int:
    if raw is None or raw == "" or isinstance(raw, bool):
        raise ValidationError("Missing event_id")
    try:
        event_id = int(str(raw).strip())
    except ValueError:
        raise ValidationError("Invalid event_id")
    if event_id < 1 or event_id > MAX_EVENT_ID:
        raise ValidationError("Invalid event_id")
    return event_id


def parse_quantity(raw, max_quantity: int) -> int:
    error = ValidationError(f"Invalid quantity (must be 1-{max_quantity})")
    if isinstance(raw, bool):
        raise error
    if isinstance(raw, str):
        try:
            raw = float(raw.strip())
        except ValueError:
            raise error
    if not isinstance(raw, Number) or raw != raw or raw in (float("inf"), float("-inf")):
        raise error
    if int(raw) != raw:
        raise error
    quantity = int(raw)
    if quantity < 1 or quantity > max_quantity:
        raise error
    return quantity


def build_checkout_request(event_id, quantity=1, purchaser_email="") -> CheckoutRequest:
    """Validate raw input into a CheckoutRequest. Raises ValidationError."""
    settings = get_settings()
    return CheckoutRequest(
        event_id=parse_event_id(event_id),
        quantity=parse_quantity(quantity, settings.MAX_TICKETS_PER_ORDER),
        purchaser_email=(purchaser_email or "").strip(),
    )


async def initiate_checkout(
    db: AsyncSession,
    provider: PaymentProvider,
    request: CheckoutRequest,
) -> CheckoutSession:
    """
    Create a payment session for a validated request.

    Raises:
        EventNotFound, EventInactive, SoldOut: advisory check failed
        UpstreamFailure: store or provider failure
        ConfigurationError: provider not configured
    """
    try:
        event = await check_capacity(db, request.event_id, request.quantity)
        event_title = event.title
    except TicketingError as e:
        record_checkout("rejected")
        logger.warning(
            "checkout_rejected",
            event_id=request.event_id,
            quantity=request.quantity,
            reason=e.code.value,
        )
        raise
    except SQLAlchemyError as e:
        record_checkout("error")
        logger.error("checkout_store_failure", event_id=request.event_id, error=str(e))
        raise UpstreamFailure("Server error")
    finally:
        # Release the read before waiting on the provider
        await db.rollback()

    try:
        session = await provider.create_checkout_session(
            event_id=request.event_id,
            event_title=event_title,
            quantity=request.quantity,
            purchaser_email=request.purchaser_email,
        )
    except TicketingError:
        record_checkout("error")
        raise

    record_checkout("created")
    logger.info(
        "checkout_session_created",
        provider=provider.name,
        event_id=request.event_id,
        quantity=request.quantity,
        session_id=session.session_id,
    )
    return session
