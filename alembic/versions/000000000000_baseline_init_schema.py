"""baseline_init_schema

Revision ID: 000000000000
Revises:
Create Date: 2026-10-19 00:00:00.000000

Baseline migration that creates the catalog, event log, profile store and
instrumentation tables. All other migrations should depend on this revision.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '000000000000'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# JSONB on Postgres, plain JSON elsewhere
JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    # Content catalog
    op.create_table(
        "items",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("author_name", sa.String(), nullable=True),
        sa.Column("genre", sa.String(), nullable=True),
        sa.Column("tags", JSONType, nullable=True),
        sa.Column("cover_image_url", sa.String(), nullable=True),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_items_genre", "items", ["genre"])
    op.create_index("ix_items_published_at", "items", ["published_at"])

    op.create_table(
        "item_emotional_profiles",
        sa.Column("item_id", sa.String(), sa.ForeignKey("items.id"), primary_key=True, nullable=False),
        sa.Column("emotional_arc", JSONType, nullable=True),
        sa.Column("peak_moments", JSONType, nullable=True),
        sa.Column("overall_tone", sa.String(), nullable=True),
        sa.Column("tension_level", sa.String(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "item_similarities",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("item_id_a", sa.String(), sa.ForeignKey("items.id"), nullable=False),
        sa.Column("item_id_b", sa.String(), sa.ForeignKey("items.id"), nullable=False),
        sa.Column("similarity_score", sa.Float(), nullable=False),
        sa.Column("similarity_reasons", JSONType, nullable=True),
        sa.UniqueConstraint("item_id_a", "item_id_b", name="uq_item_similarities_pair"),
    )
    op.create_index("ix_item_similarities_item_id_a", "item_similarities", ["item_id_a"])
    op.create_index("ix_item_similarities_item_id_b", "item_similarities", ["item_id_b"])

    op.create_table(
        "trending_items",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("item_id", sa.String(), sa.ForeignKey("items.id"), nullable=False),
        sa.Column("period", sa.String(), nullable=False, server_default="weekly"),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("reads_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("computed_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("period", "item_id", name="uq_trending_items_period_item"),
    )
    op.create_index("ix_trending_items_item_id", "trending_items", ["item_id"])
    op.create_index("ix_trending_items_period", "trending_items", ["period"])

    # Event log
    op.create_table(
        "emotional_events",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("item_id", sa.String(), nullable=False),
        sa.Column("chapter_id", sa.String(), nullable=True),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("emotional_context", sa.String(), nullable=True),
        sa.Column("duration", sa.Float(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_emotional_events_user_id", "emotional_events", ["user_id"])
    op.create_index("ix_emotional_events_item_id", "emotional_events", ["item_id"])
    op.create_index("ix_emotional_events_event_type", "emotional_events", ["event_type"])
    op.create_index("ix_emotional_events_occurred_at", "emotional_events", ["occurred_at"])
    op.create_index(
        "idx_emotional_events_user_type_time",
        "emotional_events",
        ["user_id", "event_type", "occurred_at"],
    )

    # Profile store
    op.create_table(
        "emotional_fingerprints",
        sa.Column("user_id", sa.String(), primary_key=True, nullable=False),
        sa.Column("emotional_profile", JSONType, nullable=False),
        sa.Column("pacing_profile", JSONType, nullable=False),
        sa.Column("sensitivity_profile", JSONType, nullable=False),
        sa.Column("engagement_signals", JSONType, nullable=False),
        sa.Column("temporal_patterns", JSONType, nullable=False),
        sa.Column("emotional_journey_preference", sa.String(), nullable=False, server_default="balanced"),
        sa.Column("data_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("confidence_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("last_updated", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "reading_preferences",
        sa.Column("user_id", sa.String(), primary_key=True, nullable=False),
        sa.Column("preferred_genres", JSONType, nullable=True),
        sa.Column("disliked_genres", JSONType, nullable=True),
        sa.Column("preferred_themes", JSONType, nullable=True),
        sa.Column("preferred_mood", JSONType, nullable=True),
        sa.Column("preferred_length", sa.String(), nullable=False, server_default="any"),
        sa.Column("reading_speed", sa.String(), nullable=False, server_default="medium"),
        sa.Column("learned", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "daily_picks",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("pick_date", sa.Date(), nullable=False),
        sa.Column("item_ids", JSONType, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "pick_date", name="uq_daily_picks_user_date"),
    )
    op.create_index("ix_daily_picks_user_id", "daily_picks", ["user_id"])
    op.create_index("ix_daily_picks_pick_date", "daily_picks", ["pick_date"])

    # Instrumentation
    op.create_table(
        "event_logs",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("event_name", sa.String(), nullable=False),
        sa.Column("properties", JSONType, nullable=True),
        sa.Column("request_id", sa.String(), nullable=True),
        sa.Column("session_id", sa.String(), nullable=True),
    )
    op.create_index("ix_event_logs_created_at", "event_logs", ["created_at"])
    op.create_index("ix_event_logs_event_name", "event_logs", ["event_name"])
    op.create_index("ix_event_logs_user_id", "event_logs", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_event_logs_user_id", table_name="event_logs")
    op.drop_index("ix_event_logs_event_name", table_name="event_logs")
    op.drop_index("ix_event_logs_created_at", table_name="event_logs")
    op.drop_table("event_logs")

    op.drop_index("ix_daily_picks_pick_date", table_name="daily_picks")
    op.drop_index("ix_daily_picks_user_id", table_name="daily_picks")
    op.drop_table("daily_picks")
    op.drop_table("reading_preferences")
    op.drop_table("emotional_fingerprints")

    op.drop_index("idx_emotional_events_user_type_time", table_name="emotional_events")
    op.drop_index("ix_emotional_events_occurred_at", table_name="emotional_events")
    op.drop_index("ix_emotional_events_event_type", table_name="emotional_events")
    op.drop_index("ix_emotional_events_item_id", table_name="emotional_events")
    op.drop_index("ix_emotional_events_user_id", table_name="emotional_events")
    op.drop_table("emotional_events")

    op.drop_index("ix_trending_items_period", table_name="trending_items")
    op.drop_index("ix_trending_items_item_id", table_name="trending_items")
    op.drop_table("trending_items")
    op.drop_index("ix_item_similarities_item_id_b", table_name="item_similarities")
    op.drop_index("ix_item_similarities_item_id_a", table_name="item_similarities")
    op.drop_table("item_similarities")
    op.drop_table("item_emotional_profiles")
    op.drop_index("ix_items_published_at", table_name="items")
    op.drop_index("ix_items_genre", table_name="items")
    op.drop_table("items")
