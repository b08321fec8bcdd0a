"""create calendar events, rooms and activity logs

Revision ID: 20261019_0001
Revises: None
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


event_state_enum = sa.Enum("PENDING", "VALIDATED", "CANCELLED", "MOVED", "IN_PROGRESS", name="event_state")


def upgrade() -> None:
    op.create_table(
        "calendar_events",
        sa.Column("id", sa.String(length=100), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("discipline", sa.String(length=50), nullable=False),
        sa.Column("owner_id", sa.String(length=100), nullable=False),
        sa.Column("state", event_state_enum, nullable=False),
        sa.Column("proposed_slots", sa.JSON(), nullable=False),
        sa.Column("accepted_slots", sa.JSON(), nullable=False),
        sa.Column("proposed_by", sa.String(length=100), nullable=True),
        sa.Column("last_state_change", sa.JSON(), nullable=True),
        sa.Column("state_change_reason", sa.Text(), nullable=True),
        sa.Column("materials", sa.JSON(), nullable=False),
        sa.Column("documents", sa.JSON(), nullable=False),
        sa.Column("signature", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_calendar_events_discipline", "calendar_events", ["discipline"])
    op.create_index("ix_calendar_events_owner_id", "calendar_events", ["owner_id"])

    op.create_table(
        "rooms",
        sa.Column("id", sa.String(length=100), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_rooms_name", "rooms", ["name"], unique=True)

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("actor_id", sa.String(length=100), nullable=True),
        sa.Column("actor_role", sa.String(length=20), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=100), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_actor_id", "activity_logs", ["actor_id"])
    op.create_index("ix_activity_logs_entity_id", "activity_logs", ["entity_id"])


def downgrade() -> None:
    op.drop_index("ix_activity_logs_entity_id", table_name="activity_logs")
    op.drop_index("ix_activity_logs_actor_id", table_name="activity_logs")
    op.drop_table("activity_logs")
    op.drop_index("ix_rooms_name", table_name="rooms")
    op.drop_table("rooms")
    op.drop_index("ix_calendar_events_owner_id", table_name="calendar_events")
    op.drop_index("ix_calendar_events_discipline", table_name="calendar_events")
    op.drop_table("calendar_events")
    event_state_enum.drop(op.get_bind(), checkfirst=True)
