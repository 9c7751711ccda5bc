from ticketgate.schemas.checkout import CheckoutCreate, CheckoutResponse
from ticketgate.schemas.status import StatusResponse
from ticketgate.schemas.webhook import WebhookAck
from ticketgate.schemas.admin import (
    AdminEventResponse, AdminEventList, ApiLogResponse, ApiLogList, AnalyticsResponse,
)

__all__ = [
    "CheckoutCreate", "CheckoutResponse",
    "StatusResponse",
    "WebhookAck",
    "AdminEventResponse", "AdminEventList", "ApiLogResponse", "ApiLogList", "AnalyticsResponse",
]
