"""
MockPay: a stand-in payment provider for local development and tests.

Sessions live in process memory. Webhooks carry a base64 HMAC-SHA256 of the
raw body in `x-mockpay-signature` and use the same event shape as Stripe, so
the webhook route and parse_completion() are exercised exactly as in
production.
"""

import base64
import hashlib
import hmac
import json
import time
import uuid
from typing import Mapping, Optional

from ticketgate.core.config import Settings
from ticketgate.core.errors import SignatureInvalid
from ticketgate.services.interfaces.payment import (
    COMPLETED_EVENT_TYPE,
    CheckoutSession,
    PaymentProvider,
    decode_event,
)

SIGNATURE_HEADER = "x-mockpay-signature"


class MockPayProvider(PaymentProvider):
    name = "mock"

    def __init__(self, settings: Settings):
        self.secret = settings.MOCK_WEBHOOK_SECRET
        self.base_url = settings.PUBLIC_BASE_URL.rstrip("/")
        self.sessions: dict[str, dict] = {}

    async def create_checkout_session(
        self,
        event_id: int,
        event_title: str,
        quantity: int,
        purchaser_email: str = "",
    ) -> CheckoutSession:
        session_id = f"mock_{uuid.uuid4().hex}"
        self.sessions[session_id] = {
            "event_id": str(event_id),
            "quantity": str(quantity),
            "purchaser_email": purchaser_email or "",
        }
        return CheckoutSession(session_id=session_id, url=f"{self.base_url}/mockpay/{session_id}")

    def sign(self, payload: bytes) -> str:
        mac = hmac.new(self.secret.encode(), payload, hashlib.sha256).digest()
        return base64.b64encode(mac).decode()

    def verify_webhook(self, payload: bytes, headers: Mapping[str, str]) -> dict:
        signature = headers.get(SIGNATURE_HEADER)
        if not signature or not hmac.compare_digest(self.sign(payload), signature):
            raise SignatureInvalid("Invalid signature")
        return decode_event(payload)

    def build_completion_event(self, session_id: str) -> Optional[bytes]:
        """Serialized completion event for a session this provider created."""
        metadata = self.sessions.get(session_id)
        if metadata is None:
            return None
        return completion_payload(session_id, metadata)


def completion_payload(
    session_id: str,
    metadata: dict,
    customer_email: str = "",
    event_type: str = COMPLETED_EVENT_TYPE,
) -> bytes:
    event = {
        "id": f"evt_{uuid.uuid4().hex}",
        "type": event_type,
        "created": int(time.time()),
        "data": {
            "object": {
                "id": session_id,
                "metadata": metadata,
                "customer_details": {"email": customer_email or None},
            }
        },
    }
    return json.dumps(event).encode()
