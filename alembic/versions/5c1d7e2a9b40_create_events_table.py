"""create events table

Revision ID: 5c1d7e2a9b40
Revises:
Create Date: 2026-10-16 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5c1d7e2a9b40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the append-only events table with its journey self-reference."""
    op.create_table(
        "events",
        sa.Column("event_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("client_id", sa.String(length=128), nullable=False),
        sa.Column("previous_event_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("user_id", sa.String(length=128), nullable=True),
        sa.Column("entity_id", sa.String(length=128), nullable=True),
        sa.Column("entity_type", sa.String(length=48), nullable=False),
        sa.Column("event_type", sa.String(length=48), nullable=False),
        sa.Column("source", sa.String(length=32), nullable=True),
        sa.Column("campaign_id", sa.String(length=128), nullable=True),
        sa.Column("points_awarded", sa.Integer(), nullable=True),
        sa.Column("session_id", sa.String(length=128), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text(), none_as_null=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("event_id"),
        sa.ForeignKeyConstraint(
            ["previous_event_id"],
            ["events.event_id"],
            name="fk_events_previous",
            ondelete="SET NULL",
        ),
    )
    op.create_index("idx_events_client_time", "events", ["client_id", sa.text("occurred_at DESC")], unique=False)
    op.create_index("idx_events_user_time", "events", ["user_id", sa.text("occurred_at DESC")], unique=False)
    op.create_index("idx_events_type_time", "events", ["event_type", sa.text("occurred_at DESC")], unique=False)
    op.create_index("idx_events_campaign_time", "events", ["campaign_id", sa.text("occurred_at DESC")], unique=False)
    op.create_index("idx_events_prev", "events", ["previous_event_id"], unique=False)
    op.create_index("idx_events_metadata_gin", "events", ["metadata"], unique=False, postgresql_using="gin")


def downgrade() -> None:
    """Drop events table."""
    op.drop_index("idx_events_metadata_gin", table_name="events")
    op.drop_index("idx_events_prev", table_name="events")
    op.drop_index("idx_events_campaign_time", table_name="events")
    op.drop_index("idx_events_type_time", table_name="events")
    op.drop_index("idx_events_user_time", table_name="events")
    op.drop_index("idx_events_client_time", table_name="events")
    op.drop_table("events")
