"""create inventory tables

Revision ID: 3c1e7a9d2b64
Revises:
Create Date: 2026-10-19 10:12:31.418220

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3c1e7a9d2b64'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


event_status = postgresql.ENUM("DRAFT", "ACTIVE", "FINISHED", "CANCELLED", name="event_status", create_type=False)
period_status = postgresql.ENUM("UPCOMING", "ONGOING", "FINISHED", "CANCELLED", name="period_status",
                                create_type=False)
ticket_type_status = postgresql.ENUM("AVAILABLE", "SOLD_OUT", "CLOSED", name="ticket_type_status",
                                     create_type=False)
transaction_status = postgresql.ENUM("PENDING", "SUCCESS", "FAILED", "CANCELLED", name="transaction_status",
                                     create_type=False)
payment_method = postgresql.ENUM("CREDIT_CARD", "DEBIT_CARD", "BANK_TRANSFER", "E_WALLET", name="payment_method",
                                 create_type=False)

ENUMS = (event_status, period_status, ticket_type_status, transaction_status, payment_method)


def _timestamps(with_updated_at: bool = True) -> list[sa.Column]:
    columns = [sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False)]
    if with_updated_at:
        columns.append(
            sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False)
        )
    columns.append(sa.Column("deleted_at", sa.TIMESTAMP(timezone=True), nullable=True))
    return columns


def upgrade() -> None:
    bind = op.get_bind()
    for enum in ENUMS:
        enum.create(bind, checkfirst=True)

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column("organizer_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("status", event_status, nullable=False),
        *_timestamps()
    )
    op.create_index("ix_events_organizer_id", "events", ["organizer_id"])
    op.create_index("ix_events_deleted_at", "events", ["deleted_at"])

    op.create_table(
        "event_periods",
        sa.Column("id", sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("start_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("end_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("status", period_status, nullable=False),
        *_timestamps(with_updated_at=False),
        sa.CheckConstraint("end_at > start_at", name="chk_period_time_range")
    )
    op.create_index("ix_event_periods_event_id", "event_periods", ["event_id"])
    op.create_index("ix_event_periods_deleted_at", "event_periods", ["deleted_at"])

    op.create_table(
        "ticket_categories",
        sa.Column("id", sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False, unique=True)
    )

    op.create_table(
        "ticket_types",
        sa.Column("id", sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column("period_id", sa.Integer(), sa.ForeignKey("event_periods.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("ticket_categories.id", ondelete="RESTRICT"),
                  nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("discount", sa.Numeric(12, 2), nullable=True),
        sa.Column("quota", sa.Integer(), nullable=False),
        sa.Column("status", ticket_type_status, nullable=False, server_default="AVAILABLE"),
        *_timestamps(),
        sa.CheckConstraint("price >= 0", name="chk_ticket_type_price_nonneg"),
        sa.CheckConstraint("discount IS NULL OR (discount >= 0 AND discount <= price)", name="chk_ticket_type_discount"),
        sa.CheckConstraint("quota >= 0", name="chk_ticket_type_quota_nonneg")
    )
    op.create_index("ix_ticket_types_period_id", "ticket_types", ["period_id"])
    op.create_index("ix_ticket_types_category_id", "ticket_types", ["category_id"])
    op.create_index("ix_ticket_types_deleted_at", "ticket_types", ["deleted_at"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("status", transaction_status, nullable=False, server_default="PENDING"),
        sa.Column("payment_method", payment_method, nullable=False),
        *_timestamps(),
        sa.CheckConstraint("total_price >= 0", name="chk_transaction_total_nonneg")
    )
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"])
    op.create_index("ix_transactions_deleted_at", "transactions", ["deleted_at"])

    op.create_table(
        "tickets",
        sa.Column("id", sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column("ticket_type_id", sa.Integer(), sa.ForeignKey("ticket_types.id", ondelete="RESTRICT"),
                  nullable=False),
        sa.Column("ticket_code", sa.Text(), nullable=False, unique=True),
        sa.Column("transaction_id", sa.Integer(), sa.ForeignKey("transactions.id", ondelete="RESTRICT"),
                  nullable=True),
        sa.Column("buyer_id", sa.Integer(), nullable=True),
        *_timestamps(with_updated_at=False)
    )
    op.create_index("ix_tickets_ticket_type_id", "tickets", ["ticket_type_id"])
    op.create_index("ix_tickets_transaction_id", "tickets", ["transaction_id"])
    op.create_index("ix_tickets_buyer_id", "tickets", ["buyer_id"])
    op.create_index("ix_tickets_deleted_at", "tickets", ["deleted_at"])
    op.create_index(
        "ix_tickets_type_available",
        "tickets",
        ["ticket_type_id", "created_at"],
        postgresql_where=sa.text("transaction_id IS NULL AND deleted_at IS NULL")
    )


def downgrade() -> None:
    op.drop_table("tickets")
    op.drop_table("transactions")
    op.drop_table("ticket_types")
    op.drop_table("ticket_categories")
    op.drop_table("event_periods")
    op.drop_table("events")

    bind = op.get_bind()
    for enum in reversed(ENUMS):
        enum.drop(bind, checkfirst=True)
