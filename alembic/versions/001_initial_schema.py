"""Initial schema: events, fulfillments, tickets, api_logs.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Events table
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ticket_limit", sa.Integer(), nullable=False),
        sa.Column("tickets_sold", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        # Last line of defence against overselling, behind the guarded UPDATE
        sa.CheckConstraint("tickets_sold >= 0", name="check_tickets_sold_non_negative"),
        sa.CheckConstraint("ticket_limit > 0", name="check_ticket_limit_positive"),
        sa.CheckConstraint("tickets_sold <= ticket_limit", name="check_sold_lte_limit"),
    )
    op.create_index("ix_events_id", "events", ["id"])
    op.create_index("ix_events_date", "events", ["date"])

    # Idempotency ledger. The UNIQUE constraint is what dedups redelivered webhooks.
    op.create_table(
        "fulfillments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("payment_session_id", sa.String(255), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("payment_session_id", name="uq_fulfillments_payment_session_id"),
        sa.CheckConstraint("quantity > 0", name="check_fulfillment_quantity_positive"),
    )
    op.create_index("ix_fulfillments_id", "fulfillments", ["id"])
    op.create_index("ix_fulfillments_event_id", "fulfillments", ["event_id"])

    # Tickets table: one row per purchased unit
    op.create_table(
        "tickets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("purchaser_email", sa.String(255), nullable=True),
        sa.Column(
            "payment_session_id",
            sa.String(255),
            sa.ForeignKey("fulfillments.payment_session_id"),
            nullable=False,
        ),
        sa.Column("unit_index", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'paid'")),
        sa.Column("checked_in", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("payment_session_id", "unit_index", name="uq_ticket_session_unit"),
        sa.CheckConstraint("status IN ('paid')", name="check_ticket_status"),
    )
    op.create_index("ix_tickets_id", "tickets", ["id"])
    op.create_index("ix_tickets_event_id", "tickets", ["event_id"])
    op.create_index("ix_tickets_payment_session_id", "tickets", ["payment_session_id"])

    # Audit rows for the admin dashboard
    op.create_table(
        "api_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("endpoint", sa.String(100), nullable=False),
        sa.Column("level", sa.String(10), nullable=False, server_default=sa.text("'info'")),
        sa.Column("event_id", sa.String(64), nullable=True),
        sa.Column("message", sa.String(1000), nullable=False),
    )
    op.create_index("ix_api_logs_id", "api_logs", ["id"])
    # Analytics counts by endpoint over a trailing window
    op.create_index("ix_api_logs_endpoint_created", "api_logs", ["endpoint", "created_at"])


def downgrade() -> None:
    op.drop_table("api_logs")
    op.drop_table("tickets")
    op.drop_table("fulfillments")
    op.drop_table("events")
