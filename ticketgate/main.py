"""
Ticketgate - Main Application Entry Point

Limited-inventory ticket sales through a hosted payment checkout:
- Per-client rate gates in front of the public endpoints
- Advisory capacity check at checkout, atomic reserve on confirmed payment
- Idempotent webhook fulfillment under at-least-once delivery
- Fail-closed public status that never reveals raw counts
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from ticketgate.core.config import get_settings
from ticketgate.core.errors import TicketingError
from ticketgate.core.logging import setup_logging, get_logger
from ticketgate.core.metrics import metrics_endpoint
from ticketgate.api.router import api_router
from ticketgate.api.middleware import AllowListCORSMiddleware, RequestLoggingMiddleware
from ticketgate.db.base import Base
from ticketgate.db.session import engine
from ticketgate.services.provider_factory import get_payment_provider

settings = get_settings()
logger = get_logger(__name__)

PUBLIC_CORS_PATHS = {
    "/checkout": "GET,POST,OPTIONS",
    "/status": "GET,OPTIONS",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        payment_provider=get_payment_provider().name,
    )

    if settings.AUTO_CREATE_TABLES:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("tables_created")

    yield

    await engine.dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Limited-inventory ticket checkout with idempotent payment fulfillment",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Innermost first: session cookie for admin, CORS for public routes, logging outermost
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SESSION_SECRET,
    session_cookie="ticketgate_admin",
    max_age=settings.ADMIN_SESSION_MAX_AGE_SECONDS,
    same_site="lax",
    https_only=settings.ENVIRONMENT == "production",
)
app.add_middleware(
    AllowListCORSMiddleware,
    allowed_origins=settings.CORS_ALLOWED_ORIGINS,
    paths=PUBLIC_CORS_PATHS,
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


@app.exception_handler(TicketingError)
async def ticketing_error_handler(request: Request, exc: TicketingError):
    return JSONResponse(exc.body(), status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info("request_invalid", errors=len(exc.errors()))
    return JSONResponse({"error": "Invalid request body"}, status_code=400)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()
