"""
Domain errors and their HTTP mapping.

Every error carries a stable `code`, a user-safe `message` and the status it
renders with. Routes raise these; a single exception handler in main.py turns
them into `{"error": message}` responses.
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    VALIDATION_ERROR = "validation_error"
    EVENT_NOT_FOUND = "event_not_found"
    EVENT_INACTIVE = "event_inactive"
    SOLD_OUT = "sold_out"
    RATE_LIMITED = "rate_limited"
    UPSTREAM_FAILURE = "upstream_failure"
    CONFIGURATION_ERROR = "configuration_error"
    SIGNATURE_INVALID = "signature_invalid"
    NOT_AUTHENTICATED = "not_authenticated"


class TicketingError(Exception):
    """Base error with code, user-safe message and HTTP status."""

    code: ErrorCode = ErrorCode.UPSTREAM_FAILURE
    status_code: int = 500

    def __init__(self, message: str, headers: Optional[dict[str, str]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.headers = headers or {}

    def body(self) -> dict:
        return {"error": self.message}

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(TicketingError):
    code = ErrorCode.VALIDATION_ERROR
    status_code = 400


class EventNotFound(TicketingError):
    code = ErrorCode.EVENT_NOT_FOUND
    status_code = 404

    def __init__(self, event_id) -> None:
        super().__init__("Event not found")
        self.event_id = event_id


class EventInactive(TicketingError):
    code = ErrorCode.EVENT_INACTIVE
    status_code = 400

    def __init__(self, event_id) -> None:
        super().__init__("Event is inactive")
        self.event_id = event_id


class SoldOut(TicketingError):
    code = ErrorCode.SOLD_OUT
    status_code = 400

    def __init__(self, event_id) -> None:
        super().__init__("Sold out")
        self.event_id = event_id


class RateLimited(TicketingError):
    """Caller may retry after `retry_after` seconds."""

    code = ErrorCode.RATE_LIMITED
    status_code = 429

    def __init__(self, retry_after: int) -> None:
        super().__init__("Rate limit exceeded", headers={"Retry-After": str(retry_after)})
        self.retry_after = retry_after

    def body(self) -> dict:
        return {"error": self.message, "retryAfterSec": self.retry_after}


class UpstreamFailure(TicketingError):
    """Transient store or payment-provider failure. Safe to retry."""

    code = ErrorCode.UPSTREAM_FAILURE
    status_code = 500


class ConfigurationError(TicketingError):
    code = ErrorCode.CONFIGURATION_ERROR
    status_code = 500


class SignatureInvalid(TicketingError):
    code = ErrorCode.SIGNATURE_INVALID
    status_code = 400


class NotAuthenticated(TicketingError):
    code = ErrorCode.NOT_AUTHENTICATED
    status_code = 401

    def __init__(self) -> None:
        super().__init__("Not authenticated")
