"""
Pydantic schemas for checkout initiation.

`event_id` and `quantity` are accepted loosely (string or number) because the
embedding pages post whatever their form fields hold; the service layer does
the strict bounds checks so that every bad input renders as a 400.
"""

from typing import Any, Optional
from pydantic import BaseModel, Field


class CheckoutCreate(BaseModel):
    event_id: Optional[Any] = None
    quantity: Any = 1
    purchaser_email: Optional[str] = Field(default="", max_length=255)


class CheckoutResponse(BaseModel):
    url: str
