"""initial

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18

"""

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "settings",
        sa.Column("key", sa.String(length=80), primary_key=True),
        sa.Column("str_value", sa.String(length=255), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "boat_events",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("boat_id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("all_day", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_boat_events_boat_id", "boat_events", ["boat_id"])
    op.create_index("ix_boat_events_start_at", "boat_events", ["start_at"])
    op.create_index("ix_boat_events_end_at", "boat_events", ["end_at"])

    op.create_table(
        "feed_request_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("mode", sa.String(length=16), nullable=False),
        sa.Column("tz", sa.String(length=64), nullable=False, server_default=""),
        sa.Column("range_start", sa.String(length=10), nullable=True),
        sa.Column("range_end", sa.String(length=10), nullable=True),
        sa.Column("user", sa.String(length=120), nullable=True),
        sa.Column("sheet_id", sa.String(length=120), nullable=True),
        sa.Column("status", sa.String(length=12), nullable=False, server_default="ok"),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("client_json", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_feed_request_logs_mode", "feed_request_logs", ["mode"])
    op.create_index("ix_feed_request_logs_user", "feed_request_logs", ["user"])
    op.create_index("ix_feed_request_logs_created_at", "feed_request_logs", ["created_at"])

def downgrade() -> None:
    op.drop_table("feed_request_logs")
    op.drop_table("boat_events")
    op.drop_table("settings")
