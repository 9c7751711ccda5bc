"""
Structured logging configuration using structlog.
JSON lines in production, console rendering elsewhere.

Request ids are bound per request by RequestLoggingMiddleware and merged from
contextvars. Purchaser e-mail addresses are masked before rendering; the full
address stays in the database only.
"""

import logging
import sys
import structlog
from ticketgate.core.config import get_settings

PII_KEYS = ("purchaser_email", "customer_email")


def mask_email(value: str) -> str:
    """fan@example.com -> f***@example.com"""
    local, sep, domain = value.partition("@")
    if not sep:
        return "***"
    return f"{local[:1]}***@{domain}"


def mask_pii(logger, method_name, event_dict):
    for key in PII_KEYS:
        value = event_dict.get(key)
        if isinstance(value, str) and value:
            event_dict[key] = mask_email(value)
    return event_dict


def build_processors(environment: str):
    """Returns (shared processors, final renderer) for an environment."""
    shared = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        mask_pii,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if environment == "production":
        # Log shippers alert on event == "paid_but_sold_out"
        shared.append(structlog.processors.format_exc_info)
        return shared, structlog.processors.JSONRenderer()
    return shared, structlog.dev.ConsoleRenderer(colors=environment != "test")


def setup_logging() -> None:
    settings = get_settings()
    shared_processors, renderer = build_processors(settings.ENVIRONMENT)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    # setup_logging runs once per lifespan; avoid stacking handlers on reload
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "stripe", "aiosqlite"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
