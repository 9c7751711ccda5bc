"""
Pydantic schemas for the admin read views.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class AdminEventResponse(BaseModel):
    id: int
    title: str
    date: datetime
    ticket_limit: int
    tickets_sold: int
    remaining: int
    is_active: bool

    model_config = {"from_attributes": True}


class AdminEventList(BaseModel):
    ok: bool = True
    events: list[AdminEventResponse]


class ApiLogResponse(BaseModel):
    id: int
    created_at: datetime
    endpoint: str
    level: str
    event_id: Optional[str]
    message: str

    model_config = {"from_attributes": True}


class ApiLogList(BaseModel):
    ok: bool = True
    logs: list[ApiLogResponse]


class AnalyticsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    status_checks_7d: int = Field(serialization_alias="statusChecks7d")
    checkout_created_7d: int = Field(serialization_alias="checkoutCreated7d")
    tickets_issued_7d: int = Field(serialization_alias="ticketsIssued7d")
