"""Create initial tables

Revision ID: 3b7d91c0e2aa
Revises:
Create Date: 2026-10-19 10:12:03.418221

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3b7d91c0e2aa"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


BOOKING_STATUSES = (
    "PENDING_PAYMENT",
    "CONFIRMED",
    "CHECKED_IN",
    "COMPLETED",
    "CANCELLED",
    "CANCELLED_LATE",
    "EXPIRED",
    "BLOCKED",
)
RECURRENCE_PATTERNS = ("WEEKLY", "BIWEEKLY", "MONTHLY")


def upgrade() -> None:
    """Upgrade schema."""
    # Create users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("hashed_password", sa.String(), nullable=True),
        sa.Column(
            "role",
            sa.Enum("CUSTOMER", "STAFF", "ADMIN", name="userrole"),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)
    op.create_index(op.f("ix_users_name"), "users", ["name"], unique=False)

    # Create courts table
    op.create_table(
        "courts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("price_per_hour", sa.Numeric(12, 2), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_courts_id"), "courts", ["id"], unique=False)

    # Create pricing_rules table
    op.create_table(
        "pricing_rules",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("court_id", sa.Integer(), nullable=True),
        sa.Column("day_of_week", sa.Integer(), nullable=True),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("price_per_hour", sa.Numeric(12, 2), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint(
            "day_of_week IS NULL OR (day_of_week >= 0 AND day_of_week <= 6)",
            name="ck_pricing_rules_day_of_week",
        ),
        sa.CheckConstraint("price_per_hour >= 0", name="ck_pricing_rules_price"),
        sa.ForeignKeyConstraint(["court_id"], ["courts.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_pricing_rules_id"), "pricing_rules", ["id"], unique=False)

    # Create booking_groups table
    op.create_table(
        "booking_groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("court_id", sa.Integer(), nullable=False),
        sa.Column(
            "pattern", sa.Enum(*RECURRENCE_PATTERNS, name="recurrencepattern"), nullable=False
        ),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("occurrences_requested", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("ACTIVE", "CANCELLED", name="bookinggroupstatus"),
            nullable=True,
        ),
        sa.Column("created_by_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["court_id"], ["courts.id"]),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_booking_groups_id"), "booking_groups", ["id"], unique=False)

    # Create bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("booking_code", sa.String(), nullable=False),
        sa.Column("court_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("guest_name", sa.String(), nullable=True),
        sa.Column("guest_phone", sa.String(), nullable=True),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("paid_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("refund_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "status", sa.Enum(*BOOKING_STATUSES, name="bookingstatus"), nullable=False
        ),
        sa.Column(
            "type",
            sa.Enum("REGULAR", "MAINTENANCE", name="bookingtype"),
            nullable=False,
        ),
        sa.Column(
            "payment_method",
            sa.Enum("WALLET", "GATEWAY", "CASH", name="paymentmethod"),
            nullable=True,
        ),
        sa.Column(
            "payment_status",
            sa.Enum(
                "UNPAID",
                "PAID",
                "PARTIALLY_PAID",
                "REFUNDED",
                "PARTIALLY_REFUNDED",
                "FAILED",
                name="paymentstatus",
            ),
            nullable=False,
        ),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("checked_in_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("cancellation_reason", sa.String(), nullable=True),
        sa.Column("overwritten", sa.Boolean(), nullable=False),
        sa.Column("admin_note", sa.String(), nullable=True),
        sa.Column("recurrence_group_id", sa.Integer(), nullable=True),
        sa.Column(
            "recurrence_pattern",
            sa.Enum(*RECURRENCE_PATTERNS, name="recurrencepattern"),
            nullable=True,
        ),
        sa.Column("recurrence_day_of_week", sa.Integer(), nullable=True),
        sa.Column(
            "created_by",
            sa.Enum("CUSTOMER", "STAFF", "ADMIN", name="bookingactor"),
            nullable=True,
        ),
        sa.Column("created_by_staff_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("end_time > start_time", name="ck_bookings_interval"),
        sa.CheckConstraint(
            "user_id IS NULL OR guest_name IS NULL", name="ck_bookings_single_owner"
        ),
        sa.CheckConstraint(
            "(recurrence_group_id IS NULL AND recurrence_pattern IS NULL "
            "AND recurrence_day_of_week IS NULL) OR "
            "(recurrence_group_id IS NOT NULL AND recurrence_pattern IS NOT NULL "
            "AND recurrence_day_of_week IS NOT NULL)",
            name="ck_bookings_recurrence_all_or_nothing",
        ),
        sa.CheckConstraint("paid_amount >= 0", name="ck_bookings_paid_amount"),
        sa.ForeignKeyConstraint(["court_id"], ["courts.id"]),
        sa.ForeignKeyConstraint(["created_by_staff_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["recurrence_group_id"], ["booking_groups.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_bookings_booking_code"), "bookings", ["booking_code"], unique=True
    )
    op.create_index(op.f("ix_bookings_id"), "bookings", ["id"], unique=False)
    op.create_index(op.f("ix_bookings_status"), "bookings", ["status"], unique=False)
    op.create_index(
        op.f("ix_bookings_recurrence_group_id"),
        "bookings",
        ["recurrence_group_id"],
        unique=False,
    )
    op.create_index(
        "ix_bookings_court_interval",
        "bookings",
        ["court_id", "start_time", "end_time"],
        unique=False,
    )

    # Create wallets table
    op.create_table(
        "wallets",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("balance", sa.Numeric(12, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("balance >= 0", name="ck_wallets_balance_non_negative"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )
    op.create_index(op.f("ix_wallets_id"), "wallets", ["id"], unique=False)

    # Create wallet_transactions table
    op.create_table(
        "wallet_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("wallet_id", sa.Integer(), nullable=False),
        sa.Column(
            "type",
            sa.Enum("TOPUP", "PAYMENT", "REFUND", "WITHDRAWAL", name="transactiontype"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("balance_before", sa.Numeric(12, 2), nullable=False),
        sa.Column("balance_after", sa.Numeric(12, 2), nullable=False),
        sa.Column("booking_id", sa.Integer(), nullable=True),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("amount > 0", name="ck_wallet_transactions_amount_positive"),
        sa.CheckConstraint(
            "balance_after >= 0", name="ck_wallet_transactions_balance_after"
        ),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"]),
        sa.ForeignKeyConstraint(["wallet_id"], ["wallets.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_wallet_transactions_id"), "wallet_transactions", ["id"], unique=False
    )
    op.create_index(
        op.f("ix_wallet_transactions_wallet_id"),
        "wallet_transactions",
        ["wallet_id"],
        unique=False,
    )

    # Create admin_actions table
    op.create_table(
        "admin_actions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("admin_id", sa.Integer(), nullable=False),
        sa.Column("booking_id", sa.Integer(), nullable=True),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("note", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["admin_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_admin_actions_id"), "admin_actions", ["id"], unique=False)

    # Create system_settings table
    op.create_table(
        "system_settings",
        sa.Column("key", sa.String(), nullable=False),
        sa.Column("value", sa.JSON(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("updated_by", sa.String(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("key"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("system_settings")
    op.drop_index(op.f("ix_admin_actions_id"), table_name="admin_actions")
    op.drop_table("admin_actions")
    op.drop_index(
        op.f("ix_wallet_transactions_wallet_id"), table_name="wallet_transactions"
    )
    op.drop_index(op.f("ix_wallet_transactions_id"), table_name="wallet_transactions")
    op.drop_table("wallet_transactions")
    op.drop_index(op.f("ix_wallets_id"), table_name="wallets")
    op.drop_table("wallets")
    op.drop_index("ix_bookings_court_interval", table_name="bookings")
    op.drop_index(op.f("ix_bookings_recurrence_group_id"), table_name="bookings")
    op.drop_index(op.f("ix_bookings_status"), table_name="bookings")
    op.drop_index(op.f("ix_bookings_id"), table_name="bookings")
    op.drop_index(op.f("ix_bookings_booking_code"), table_name="bookings")
    op.drop_table("bookings")
    op.drop_index(op.f("ix_booking_groups_id"), table_name="booking_groups")
    op.drop_table("booking_groups")
    op.drop_index(op.f("ix_pricing_rules_id"), table_name="pricing_rules")
    op.drop_table("pricing_rules")
    op.drop_index(op.f("ix_courts_id"), table_name="courts")
    op.drop_table("courts")
    op.drop_index(op.f("ix_users_id"), table_name="users")
    op.drop_index(op.f("ix_users_name"), table_name="users")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
