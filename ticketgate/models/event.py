"""
Event model with ticket inventory tracking.

Key design decisions:
- `tickets_sold` is only ever incremented by the guarded UPDATE in
  services/inventory_service.reserve
- CHECK constraints are the final safety net: 0 <= tickets_sold <= ticket_limit
- `is_active` gates reservations; an inactive event never sells
"""

import enum

from sqlalchemy import Boolean, Column, Integer, String, DateTime, Index, CheckConstraint
from sqlalchemy.orm import relationship

from ticketgate.db.base import Base, TimestampMixin


# Upper bound of the 32-bit `events.id` column
MAX_EVENT_ID = 2**31 - 1


class EventState(str, enum.Enum):
    OPEN = "open"
    SOLD_OUT = "sold_out"
    INACTIVE = "inactive"


def event_state(is_active: bool, tickets_sold: int, ticket_limit: int) -> EventState:
    """Single source of truth for whether an event can still sell."""
    if not is_active:
        return EventState.INACTIVE
    if (tickets_sold or 0) >= (ticket_limit or 0):
        return EventState.SOLD_OUT
    return EventState.OPEN


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    ticket_limit = Column(Integer, nullable=False)
    tickets_sold = Column(Integer, nullable=False, default=0, server_default="0")
    is_active = Column(Boolean, nullable=False, default=True)

    tickets = relationship("Ticket", back_populates="event", lazy="raise")

    __table_args__ = (
        CheckConstraint("tickets_sold >= 0", name="check_tickets_sold_non_negative"),
        CheckConstraint("ticket_limit > 0", name="check_ticket_limit_positive"),
        CheckConstraint("tickets_sold <= ticket_limit", name="check_sold_lte_limit"),
        Index("ix_events_date", "date"),
    )

    @property
    def state(self) -> EventState:
        return event_state(self.is_active, self.tickets_sold, self.ticket_limit)

    @property
    def remaining(self) -> int:
        return max(0, self.ticket_limit - self.tickets_sold)

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, sold={self.tickets_sold}/{self.ticket_limit})>"
