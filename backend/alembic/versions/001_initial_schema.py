"""Initial schema: events, registrations, event_reminders with indexes and constraints.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_PREDICATE = sa.text("status IN ('registered', 'waitlisted')")


def upgrade() -> None:
    # Events table (catalog view)
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("location", sa.String(255), nullable=True),
        # NULL capacity = unlimited seats
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("capacity IS NULL OR capacity >= 0", name="check_event_capacity_non_negative"),
    )
    op.create_index("ix_events_id", "events", ["id"])
    op.create_index("ix_events_date", "events", ["date"])

    # Registrations table
    op.create_table(
        "registrations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("attendee_id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("status IN ('registered', 'waitlisted')", name="check_registration_status"),
    )
    op.create_index("ix_registrations_id", "registrations", ["id"])
    op.create_index("ix_registrations_attendee_id", "registrations", ["attendee_id"])
    # ONE ACTIVE ROW PER ATTENDEE PER EVENT: partial unique index.
    # Two concurrent registrations for the same pair cannot both commit,
    # whatever the application-level check saw.
    op.create_index(
        "uq_registrations_active_attendee_event",
        "registrations",
        ["attendee_id", "event_id"],
        unique=True,
        postgresql_where=ACTIVE_PREDICATE,
        sqlite_where=ACTIVE_PREDICATE,
    )
    # Covers COUNT(*) WHERE event_id = ? AND status = 'registered'
    # and the FIFO scan ORDER BY created_at, id for waitlisted rows.
    op.create_index(
        "ix_registrations_event_status_fifo",
        "registrations",
        ["event_id", "status", "created_at", "id"],
    )

    # Event reminders table
    op.create_table(
        "event_reminders",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("attendee_id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("remind_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_triggered", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_event_reminders_id", "event_reminders", ["id"])
    op.create_index("ix_event_reminders_attendee_id", "event_reminders", ["attendee_id"])
    op.create_index("ix_event_reminders_due", "event_reminders", ["is_triggered", "remind_at"])


def downgrade() -> None:
    op.drop_table("event_reminders")
    op.drop_table("registrations")
    op.drop_table("events")
