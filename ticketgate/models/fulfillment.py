"""
Idempotency ledger: one row per payment session that has been fulfilled.

The UNIQUE constraint on payment_session_id is what turns at-least-once
webhook delivery into an exactly-once effect. A concurrent duplicate insert
fails with IntegrityError and its whole transaction (including the reserve)
rolls back.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint, func

from ticketgate.db.base import Base


class Fulfillment(Base):
    __tablename__ = "fulfillments"

    id = Column(Integer, primary_key=True, index=True)
    payment_session_id = Column(String(255), nullable=False, unique=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_fulfillment_quantity_positive"),
    )

    def __repr__(self) -> str:
        return f"<Fulfillment(session={self.payment_session_id}, event={self.event_id}, qty={self.quantity})>"
