"""Initial schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 10:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


role_enum = sa.Enum(
    "resident",
    "security",
    "management",
    "app_admin",
    "administration",
    name="role_enum",
    native_enum=False,
)
unit_type_enum = sa.Enum("villa", "flat", name="unit_type_enum", native_enum=False)
request_statuses = ("pending", "approved", "rejected")
pricing_type_enum = sa.Enum("hourly", "per_slot", "per_day", name="pricing_type_enum", native_enum=False)
facility_status_enum = sa.Enum("Available", "Maintenance", "Closed", name="facility_status_enum", native_enum=False)
booking_status_enum = sa.Enum(
    "confirmed",
    "cancellation_requested",
    "modification_requested",
    "cancelled",
    name="booking_status_enum",
    native_enum=False,
)
fee_type_enum = sa.Enum(
    "maintenance",
    "facility_booking",
    "cancellation_charge",
    name="fee_type_enum",
    native_enum=False,
)
payment_status_enum = sa.Enum(
    "pending",
    "paid",
    "overdue",
    "partial",
    "cancelled",
    name="payment_status_enum",
    native_enum=False,
)
outbox_status_enum = sa.Enum("pending", "processed", "failed", name="outbox_status_enum", native_enum=False)


def _id_col() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False)


def _created_col() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def _updated_col() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False)


def _request_status(name: str) -> sa.Enum:
    return sa.Enum(*request_statuses, name=name, native_enum=False)


def upgrade() -> None:
    op.create_table(
        "units",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("unit_number", sa.String(length=32), nullable=False),
        sa.Column("block_name", sa.String(length=64), nullable=True),
        sa.Column("unit_type", unit_type_enum, nullable=False),
        sa.UniqueConstraint("unit_number", name="uq_units_unit_number"),
    )

    op.create_table(
        "users",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", role_enum, nullable=False),
        sa.Column("unit_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("must_change_password", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"], name="fk_users_unit_id_units", ondelete="SET NULL"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_unit_id", "users", ["unit_id"], unique=False)

    op.create_table(
        "password_reset_requests",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("status", _request_status("reset_request_status_enum"), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_password_reset_requests_user_id_users",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["resolved_by"],
            ["users.id"],
            name="fk_password_reset_requests_resolved_by_users",
            ondelete="SET NULL",
        ),
    )
    op.create_index("ix_password_reset_requests_user_id", "password_reset_requests", ["user_id"], unique=False)
    op.create_index("ix_password_reset_requests_status", "password_reset_requests", ["status"], unique=False)

    op.create_table(
        "facilities",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
        sa.Column("pricing_type", pricing_type_enum, nullable=False),
        sa.Column("hourly_rate", sa.Numeric(12, 2), nullable=False),
        sa.Column("open_time", sa.String(length=8), nullable=True),
        sa.Column("close_time", sa.String(length=8), nullable=True),
        sa.Column("slots", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("booking_rules", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("status", facility_status_enum, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("per_person_applicable", sa.Boolean(), nullable=False),
        sa.Column("gst_applicable", sa.Boolean(), nullable=False),
        sa.Column("gst_rate", sa.Numeric(5, 2), nullable=True),
        sa.Column("sac_code", sa.String(length=16), nullable=True),
    )
    op.create_index("ix_facilities_is_active", "facilities", ["is_active"], unique=False)

    op.create_table(
        "maintenance_fees",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("unit_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("tax_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("fee_type", fee_type_enum, nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("payment_status", payment_status_enum, nullable=False),
        sa.ForeignKeyConstraint(
            ["unit_id"],
            ["units.id"],
            name="fk_maintenance_fees_unit_id_units",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_maintenance_fees_unit_id", "maintenance_fees", ["unit_id"], unique=False)
    op.create_index("ix_maintenance_fees_fee_type", "maintenance_fees", ["fee_type"], unique=False)
    op.create_index("ix_maintenance_fees_payment_status", "maintenance_fees", ["payment_status"], unique=False)

    op.create_table(
        "bookings",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("facility_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("group_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("status", booking_status_enum, nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("number_of_persons", sa.Integer(), nullable=False),
        sa.Column("invoice_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["facility_id"],
            ["facilities.id"],
            name="fk_bookings_facility_id_facilities",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_bookings_user_id_users", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["invoice_id"],
            ["maintenance_fees.id"],
            name="fk_bookings_invoice_id_maintenance_fees",
            ondelete="SET NULL",
        ),
    )
    op.create_index("ix_bookings_facility_id", "bookings", ["facility_id"], unique=False)
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"], unique=False)
    op.create_index("ix_bookings_group_id", "bookings", ["group_id"], unique=False)
    op.create_index("ix_bookings_date", "bookings", ["date"], unique=False)
    op.create_index("ix_bookings_status", "bookings", ["status"], unique=False)
    op.create_index("ix_bookings_invoice_id", "bookings", ["invoice_id"], unique=False)

    op.create_table(
        "booking_cancellations",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("request_reason", sa.Text(), nullable=False),
        sa.Column("requested_by", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("status", _request_status("cancellation_status_enum"), nullable=False),
        sa.Column("admin_response", sa.Text(), nullable=True),
        sa.Column("cancellation_charges", sa.Numeric(12, 2), nullable=False),
        sa.Column("reviewed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["booking_id"],
            ["bookings.id"],
            name="fk_booking_cancellations_booking_id_bookings",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["requested_by"],
            ["users.id"],
            name="fk_booking_cancellations_requested_by_users",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["reviewed_by"],
            ["users.id"],
            name="fk_booking_cancellations_reviewed_by_users",
            ondelete="SET NULL",
        ),
    )
    op.create_index("ix_booking_cancellations_booking_id", "booking_cancellations", ["booking_id"], unique=False)
    op.create_index("ix_booking_cancellations_status", "booking_cancellations", ["status"], unique=False)

    op.create_table(
        "booking_modifications",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("new_date", sa.Date(), nullable=False),
        sa.Column("new_start_time", sa.Time(), nullable=False),
        sa.Column("new_end_time", sa.Time(), nullable=False),
        sa.Column("status", _request_status("modification_status_enum"), nullable=False),
        sa.Column("request_reason", sa.Text(), nullable=True),
        sa.Column("admin_response", sa.Text(), nullable=True),
        sa.Column("reviewed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["booking_id"],
            ["bookings.id"],
            name="fk_booking_modifications_booking_id_bookings",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["reviewed_by"],
            ["users.id"],
            name="fk_booking_modifications_reviewed_by_users",
            ondelete="SET NULL",
        ),
    )
    op.create_index("ix_booking_modifications_booking_id", "booking_modifications", ["booking_id"], unique=False)
    op.create_index("ix_booking_modifications_status", "booking_modifications", ["status"], unique=False)

    op.create_table(
        "audit_logs",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("action", sa.String(length=128), nullable=False),
        sa.Column("entity_type", sa.String(length=128), nullable=False),
        sa.Column("entity_id", sa.String(length=128), nullable=True),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("partial", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["actor_id"], ["users.id"], name="fk_audit_logs_actor_id_users", ondelete="SET NULL"),
    )
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"], unique=False)
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"], unique=False)
    op.create_index("ix_audit_logs_entity_id", "audit_logs", ["entity_id"], unique=False)
    op.create_index("ix_audit_logs_partial", "audit_logs", ["partial"], unique=False)

    op.create_table(
        "outbox_events",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("aggregate_type", sa.String(length=128), nullable=False),
        sa.Column("aggregate_id", sa.String(length=128), nullable=False),
        sa.Column("event_type", sa.String(length=128), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("status", outbox_status_enum, nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
    )
    op.create_index("ix_outbox_events_aggregate_type", "outbox_events", ["aggregate_type"], unique=False)
    op.create_index("ix_outbox_events_aggregate_id", "outbox_events", ["aggregate_id"], unique=False)
    op.create_index("ix_outbox_events_event_type", "outbox_events", ["event_type"], unique=False)
    op.create_index("ix_outbox_events_status", "outbox_events", ["status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_outbox_events_status", table_name="outbox_events")
    op.drop_index("ix_outbox_events_event_type", table_name="outbox_events")
    op.drop_index("ix_outbox_events_aggregate_id", table_name="outbox_events")
    op.drop_index("ix_outbox_events_aggregate_type", table_name="outbox_events")
    op.drop_table("outbox_events")

    op.drop_index("ix_audit_logs_partial", table_name="audit_logs")
    op.drop_index("ix_audit_logs_entity_id", table_name="audit_logs")
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_index("ix_audit_logs_actor_id", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_booking_modifications_status", table_name="booking_modifications")
    op.drop_index("ix_booking_modifications_booking_id", table_name="booking_modifications")
    op.drop_table("booking_modifications")

    op.drop_index("ix_booking_cancellations_status", table_name="booking_cancellations")
    op.drop_index("ix_booking_cancellations_booking_id", table_name="booking_cancellations")
    op.drop_table("booking_cancellations")

    op.drop_index("ix_bookings_invoice_id", table_name="bookings")
    op.drop_index("ix_bookings_status", table_name="bookings")
    op.drop_index("ix_bookings_date", table_name="bookings")
    op.drop_index("ix_bookings_group_id", table_name="bookings")
    op.drop_index("ix_bookings_user_id", table_name="bookings")
    op.drop_index("ix_bookings_facility_id", table_name="bookings")
    op.drop_table("bookings")

    op.drop_index("ix_maintenance_fees_payment_status", table_name="maintenance_fees")
    op.drop_index("ix_maintenance_fees_fee_type", table_name="maintenance_fees")
    op.drop_index("ix_maintenance_fees_unit_id", table_name="maintenance_fees")
    op.drop_table("maintenance_fees")

    op.drop_index("ix_facilities_is_active", table_name="facilities")
    op.drop_table("facilities")

    op.drop_index("ix_password_reset_requests_status", table_name="password_reset_requests")
    op.drop_index("ix_password_reset_requests_user_id", table_name="password_reset_requests")
    op.drop_table("password_reset_requests")

    op.drop_index("ix_users_unit_id", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    op.drop_table("units")
