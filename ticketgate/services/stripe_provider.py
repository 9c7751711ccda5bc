"""
Stripe Checkout provider.

The stripe SDK is synchronous, so session creation runs in a worker thread and
is bounded by PAYMENT_TIMEOUT_SECONDS. No database transaction is open while
we wait on Stripe: checkout releases its advisory read before calling here.
"""

import asyncio
import time
from typing import Mapping

import stripe

from ticketgate.core.config import Settings
from ticketgate.core.errors import ConfigurationError, SignatureInvalid, UpstreamFailure
from ticketgate.core.logging import get_logger
from ticketgate.core.metrics import payment_session_latency
from ticketgate.services.interfaces.payment import (
    CheckoutSession,
    PaymentProvider,
    decode_event,
)

logger = get_logger(__name__)

SIGNATURE_HEADER = "stripe-signature"
SIGNATURE_TOLERANCE_SECONDS = 300


class StripeProvider(PaymentProvider):
    name = "stripe"

    def __init__(self, settings: Settings):
        self.secret_key = settings.STRIPE_SECRET_KEY
        self.webhook_secret = settings.STRIPE_WEBHOOK_SECRET
        self.timeout = settings.PAYMENT_TIMEOUT_SECONDS
        self.price_cents = settings.TICKET_PRICE_CENTS
        self.currency = settings.TICKET_CURRENCY
        self.success_url = settings.CHECKOUT_SUCCESS_URL
        self.cancel_url = settings.CHECKOUT_CANCEL_URL

    async def create_checkout_session(
        self,
        event_id: int,
        event_title: str,
        quantity: int,
        purchaser_email: str = "",
    ) -> CheckoutSession:
        if not self.secret_key:
            raise ConfigurationError("Missing server environment variables.")

        params = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": self.currency,
                        "product_data": {"name": f"Ticket: {event_title}"},
                        "unit_amount": self.price_cents,
                    },
                    "quantity": quantity,
                }
            ],
            "success_url": self.success_url,
            "cancel_url": self.cancel_url,
            "metadata": {
                "event_id": str(event_id),
                "quantity": str(quantity),
                "purchaser_email": purchaser_email or "",
            },
        }
        if purchaser_email:
            params["customer_email"] = purchaser_email

        start = time.perf_counter()
        try:
            session = await asyncio.wait_for(
                asyncio.to_thread(stripe.checkout.Session.create, api_key=self.secret_key, **params),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.error("payment_session_timeout", provider=self.name, event_id=event_id)
            raise UpstreamFailure("Payment provider timed out")
        except stripe.StripeError as e:
            logger.error("payment_session_failed", provider=self.name, event_id=event_id, error=str(e))
            raise UpstreamFailure("Server error")
        finally:
            payment_session_latency.observe(time.perf_counter() - start)

        return CheckoutSession(session_id=session.id, url=session.url)

    def verify_webhook(self, payload: bytes, headers: Mapping[str, str]) -> dict:
        if not self.webhook_secret:
            raise ConfigurationError("Missing env vars for webhook")

        signature = headers.get(SIGNATURE_HEADER)
        if not signature:
            raise SignatureInvalid("Missing stripe-signature")

        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"),
                signature,
                self.webhook_secret,
                tolerance=SIGNATURE_TOLERANCE_SECONDS,
            )
        except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
            raise SignatureInvalid(f"Webhook signature verification failed: {e}")

        return decode_event(payload)
