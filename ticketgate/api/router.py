"""
Central router that aggregates all route modules.

The public endpoints are mounted at the root because third-party pages embed
their URLs directly.
"""

from fastapi import APIRouter
from ticketgate.api.routes import admin, checkout, mockpay, status, webhook

api_router = APIRouter()
api_router.include_router(checkout.router)
api_router.include_router(status.router)
api_router.include_router(webhook.router)
api_router.include_router(admin.router)
api_router.include_router(mockpay.router)
