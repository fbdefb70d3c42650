"""Initial schema: the bookable unit and bookings, with overlap protection.

Revision ID: 001
Revises: None
Create Date: 2024-05-20
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

STATUSES = (
    "draft",
    "awaiting_customer_info",
    "awaiting_payment",
    "pending_review",
    "confirmed",
    "cancelled",
    "expired",
)


def upgrade() -> None:
    bind = op.get_bind()
    is_postgres = bind.dialect.name == "postgresql"

    # Units table
    units = op.create_table(
        "units",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.bulk_insert(units, [{"id": "villa", "name": "The Villa", "version": 1}])

    # Bookings table
    status_list = ", ".join(f"'{s}'" for s in STATUSES)
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("unit_id", sa.String(64), sa.ForeignKey("units.id"), nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=True),
        sa.Column("check_in", sa.DateTime(timezone=True), nullable=False),
        sa.Column("check_out", sa.DateTime(timezone=True), nullable=False),
        sa.Column("guest_count", sa.Integer(), nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default=sa.text("'draft'")),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("payment_method", sa.String(20), nullable=True),
        sa.Column("payment_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_proof_ref", sa.String(2048), nullable=True),
        sa.Column("payment_submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("special_requests", sa.String(500), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expired_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by", sa.String(64), nullable=True),
        sa.Column("cancellation_reason", sa.String(500), nullable=True),
        sa.Column("refund_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("check_out > check_in", name="check_booking_dates_ordered"),
        sa.CheckConstraint("guest_count BETWEEN 1 AND 8", name="check_booking_guest_count"),
        sa.CheckConstraint("total_price >= 0", name="check_booking_total_price_non_negative"),
        sa.CheckConstraint(f"status IN ({status_list})", name="check_booking_status"),
        sa.CheckConstraint(
            "payment_method IS NULL OR payment_method IN ('bank_transfer', 'qr_transfer')",
            name="check_booking_payment_method",
        ),
        sa.CheckConstraint(
            "payment_proof_ref IS NULL OR payment_method IS NOT NULL",
            name="check_booking_proof_requires_method",
        ),
        sa.CheckConstraint(
            "(status = 'cancelled' AND cancelled_at IS NOT NULL AND refund_amount IS NOT NULL)"
            " OR (status != 'cancelled' AND cancelled_at IS NULL AND refund_amount IS NULL)",
            name="check_booking_cancellation_fields",
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_owner_id", "bookings", ["owner_id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    # Every availability check filters on unit and range
    op.create_index("ix_bookings_unit_range", "bookings", ["unit_id", "check_in", "check_out"])

    if is_postgres:
        # NO DOUBLE BOOKING, ENFORCED AT COMMIT TIME.
        # Two active bookings on the same unit may not share a night. '[)' makes
        # the range half-open, so a check-out and a check-in on the same day do
        # not collide.
        op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
        op.execute(
            """
            ALTER TABLE bookings
            ADD CONSTRAINT excl_bookings_no_overlap
            EXCLUDE USING gist (
                unit_id WITH =,
                tstzrange(check_in, check_out, '[)') WITH &&
            )
            WHERE (status NOT IN ('cancelled', 'expired'))
            """
        )


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("units")
