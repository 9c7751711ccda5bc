"""
Admin authentication: a static shared password and a signed session cookie.

The cookie is issued by Starlette's SessionMiddleware (itsdangerous-signed),
so the only server-side state is the `admin_authed` flag inside it.
"""

import hmac

from fastapi import Request

from ticketgate.core.config import get_settings
from ticketgate.core.errors import ConfigurationError, NotAuthenticated

ADMIN_SESSION_KEY = "admin_authed"


def ct_equal(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode(), b.encode())


def verify_admin_password(password: str) -> bool:
    """Constant-time comparison against ADMIN_PASSWORD."""
    expected = get_settings().ADMIN_PASSWORD
    if not expected:
        raise ConfigurationError("Missing ADMIN_PASSWORD")
    return ct_equal(password, expected)


def is_admin(request: Request) -> bool:
    return bool(request.session.get(ADMIN_SESSION_KEY))


def require_admin(request: Request) -> None:
    """FastAPI dependency guarding the admin read endpoints."""
    if not is_admin(request):
        raise NotAuthenticated()
