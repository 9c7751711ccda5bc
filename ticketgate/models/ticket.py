"""
Ticket model: one row per purchased unit.

Key design decisions:
- All tickets of one purchase share the payment_session_id of their ledger row
- UNIQUE (payment_session_id, unit_index) makes a duplicate batch impossible
- `checked_in` belongs to the door check-in flow and is never set here
"""

from sqlalchemy import Boolean, Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, func
from sqlalchemy.orm import relationship

from ticketgate.db.base import Base

TICKET_STATUS_PAID = "paid"


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    purchaser_email = Column(String(255), nullable=True)
    payment_session_id = Column(
        String(255),
        ForeignKey("fulfillments.payment_session_id"),
        nullable=False,
        index=True,
    )
    unit_index = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=TICKET_STATUS_PAID)
    checked_in = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    event = relationship("Event", back_populates="tickets")

    __table_args__ = (
        UniqueConstraint("payment_session_id", "unit_index", name="uq_ticket_session_unit"),
        CheckConstraint("status IN ('paid')", name="check_ticket_status"),
    )

    def __repr__(self) -> str:
        return f"<Ticket(id={self.id}, event={self.event_id}, session={self.payment_session_id})>"
