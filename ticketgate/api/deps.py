"""
Shared route dependencies: client identity and per-operation rate gates.
"""

from functools import lru_cache

from fastapi import Depends, Request

from ticketgate.core.config import get_settings
from ticketgate.core.errors import RateLimited
from ticketgate.core.logging import get_logger
from ticketgate.services.rate_gate import RateGate

logger = get_logger(__name__)


def client_key(request: Request) -> str:
    """First X-Forwarded-For hop, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


@lru_cache()
def get_checkout_gate() -> RateGate:
    settings = get_settings()
    return RateGate(
        settings.CHECKOUT_RATE_LIMIT_MAX,
        settings.CHECKOUT_RATE_LIMIT_WINDOW_SECONDS,
        name="checkout",
    )


@lru_cache()
def get_status_gate() -> RateGate:
    settings = get_settings()
    return RateGate(
        settings.STATUS_RATE_LIMIT_MAX,
        settings.STATUS_RATE_LIMIT_WINDOW_SECONDS,
        name="status",
    )


def _admit(gate: RateGate, key: str) -> str:
    admission = gate.admit(key)
    if not admission.allowed:
        logger.warning("rate_limited", gate=gate.name, client=key, retry_after=admission.retry_after_seconds)
        raise RateLimited(admission.retry_after_seconds)
    return key


def admit_checkout(
    request: Request,
    gate: RateGate = Depends(get_checkout_gate),
) -> str:
    """Returns the client key once admitted; raises RateLimited otherwise."""
    return _admit(gate, client_key(request))


def admit_status(
    request: Request,
    gate: RateGate = Depends(get_status_gate),
) -> str:
    return _admit(gate, client_key(request))
