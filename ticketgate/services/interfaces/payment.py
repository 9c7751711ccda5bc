"""
Payment provider interface.
Allows swapping the hosted checkout provider without changing business logic.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Mapping, Optional

from ticketgate.core.errors import ValidationError
from ticketgate.models.event import MAX_EVENT_ID

COMPLETED_EVENT_TYPE = "checkout.session.completed"


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    url: str


@dataclass(frozen=True)
class PaymentCompleted:
    """A verified 'payment completed' notification, metadata echoed back."""

    session_id: str
    event_id: int
    quantity: int
    purchaser_email: str = ""


class PaymentProvider(ABC):
    """
    Interface for hosted checkout providers.

    Implementations:
    - StripeProvider: Stripe Checkout Sessions + signed webhooks
    - MockPayProvider: in-process sessions + HMAC-signed webhooks (development)
    """

    name: str = "abstract"

    @abstractmethod
    async def create_checkout_session(
        self,
        event_id: int,
        event_title: str,
        quantity: int,
        purchaser_email: str = "",
    ) -> CheckoutSession:
        """
        Create a payment session for `quantity` tickets.

        `event_id`, `quantity` and `purchaser_email` travel as metadata and
        come back verbatim in the completion notification.

        Raises:
            UpstreamFailure: provider error or timeout
            ConfigurationError: provider credentials missing
        """

    @abstractmethod
    def verify_webhook(self, payload: bytes, headers: Mapping[str, str]) -> dict:
        """
        Verify the signature over the raw, unparsed body and return the
        decoded event.

        Raises:
            SignatureInvalid: missing or wrong signature
        """

    def parse_completion(self, event: dict) -> Optional[PaymentCompleted]:
        """
        Extract a PaymentCompleted from a checkout-session event.
        Returns None for any other event type.
        """
        if event.get("type") != COMPLETED_EVENT_TYPE:
            return None

        session = (event.get("data") or {}).get("object") or {}
        metadata = session.get("metadata") or {}
        customer = session.get("customer_details") or {}

        session_id = session.get("id")
        if not session_id:
            raise ValidationError("Missing session id in payment event")

        raw_event_id = metadata.get("event_id")
        if not raw_event_id:
            raise ValidationError("Missing event_id in session metadata")
        try:
            event_id = int(raw_event_id)
            quantity = int(metadata.get("quantity") or "1")
        except (TypeError, ValueError):
            raise ValidationError("Invalid session metadata")
        if not 1 <= event_id <= MAX_EVENT_ID:
            raise ValidationError("Invalid event_id in session metadata")
        if quantity < 1:
            raise ValidationError("Invalid quantity in session metadata")

        purchaser_email = customer.get("email") or metadata.get("purchaser_email") or ""
        return PaymentCompleted(
            session_id=session_id,
            event_id=event_id,
            quantity=quantity,
            purchaser_email=purchaser_email,
        )


def decode_event(payload: bytes) -> dict:
    try:
        event = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise ValidationError("Invalid JSON")
    if not isinstance(event, dict):
        raise ValidationError("Invalid JSON")
    return event
