"""
Request middleware: access logging with request ids, and allow-list CORS for
the public endpoints.
"""

import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
import structlog

from ticketgate.core.logging import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")
QUIET_PATHS = frozenset({"/health", "/metrics"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    One access-log line per request, correlated by request id.

    An upstream `X-Request-ID` (load balancer, provider retry) is reused when
    it looks sane, otherwise a short random id is minted. Probe paths log at
    debug; 5xx responses log at error so they stand out next to the
    `paid_but_sold_out` alerts.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER, "")
        request_id = incoming if _REQUEST_ID_RE.match(incoming) else uuid.uuid4().hex[:8]
        path = request.url.path
        start_time = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=path,
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                error=str(e),
                duration_ms=_elapsed_ms(start_time),
            )
            raise

        duration_ms = _elapsed_ms(start_time)
        if response.status_code >= 500:
            log = logger.error
        elif path in QUIET_PATHS:
            log = logger.debug
        else:
            log = logger.info
        log("request_completed", status_code=response.status_code, duration_ms=duration_ms)

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms}ms"
        return response


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class AllowListCORSMiddleware(BaseHTTPMiddleware):
    """
    CORS for the public endpoints embedded in third-party pages.

    Only origins on the allow-list are echoed back; any other origin (or none)
    gets `Access-Control-Allow-Origin: null`. Preflight OPTIONS requests are
    answered here with 204 and never reach the routes.

    `paths` maps a route path to the methods it advertises.
    """

    def __init__(self, app, allowed_origins: list[str], paths: dict[str, str]):
        super().__init__(app)
        self.allowed_origins = set(allowed_origins)
        self.paths = paths

    def cors_headers(self, origin: str | None, methods: str) -> dict[str, str]:
        allow_origin = origin if origin and origin in self.allowed_origins else "null"
        return {
            "Access-Control-Allow-Origin": allow_origin,
            "Access-Control-Allow-Methods": methods,
            "Access-Control-Allow-Headers": "Content-Type",
            "Access-Control-Max-Age": "86400",
            "Vary": "Origin",
        }

    async def dispatch(self, request: Request, call_next) -> Response:
        methods = self.paths.get(request.url.path.rstrip("/") or "/")
        if methods is None:
            return await call_next(request)

        headers = self.cors_headers(request.headers.get("origin"), methods)

        if request.method == "OPTIONS":
            return Response(status_code=204, headers=headers)

        response = await call_next(request)
        response.headers.update(headers)
        return response
