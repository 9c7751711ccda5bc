"""
Audit rows written by the public endpoints and read by the admin views.
"""

from sqlalchemy import Column, Integer, String, DateTime, Index, func

from ticketgate.db.base import Base


class ApiLog(Base):
    __tablename__ = "api_logs"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    endpoint = Column(String(100), nullable=False)
    level = Column(String(10), nullable=False, default="info")
    event_id = Column(String(64), nullable=True)
    message = Column(String(1000), nullable=False)

    __table_args__ = (
        Index("ix_api_logs_endpoint_created", "endpoint", "created_at"),
    )
