"""
Webhook acknowledgement bodies.
"""

from typing import Optional
from pydantic import BaseModel


class WebhookAck(BaseModel):
    received: bool = True
    outcome: Optional[str] = None
