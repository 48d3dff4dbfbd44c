from sqlalchemy import Column, String, Integer, Text, Boolean, DateTime, Date, ForeignKey, JSON, Float, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime
import enum
import sqlalchemy as sa
from personalizer.database import Base


# JSONB on Postgres, plain JSON elsewhere (SQLite in tests and local dev)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _uuid_str() -> str:
    return str(uuid.uuid4())


class EventType(str, enum.Enum):
    PAUSE = "pause"
    SPEED_UP = "speed_up"
    SLOW_DOWN = "slow_down"
    REREAD = "reread"
    SKIP = "skip"
    CHAPTER_END = "chapter_end"
    ABANDON = "abandon"
    COMPLETE = "complete"


class EmotionChannel(str, enum.Enum):
    JOY = "joy"
    SADNESS = "sadness"
    EXCITEMENT = "excitement"
    FEAR = "fear"
    ROMANCE = "romance"
    NOSTALGIA = "nostalgia"
    WONDER = "wonder"
    TENSION = "tension"


class TensionLevel(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PacePreference(str, enum.Enum):
    SLOW_BURN = "slow_burn"
    BALANCED = "balanced"
    FAST_PACED = "fast_paced"


class ViolenceThreshold(str, enum.Enum):
    NONE = "none"
    MILD = "mild"
    MODERATE = "moderate"
    EXPLICIT = "explicit"


class RomanceComfort(str, enum.Enum):
    FADE_TO_BLACK = "fade_to_black"
    SUGGESTIVE = "suggestive"
    DETAILED = "detailed"


class JumpScareReaction(str, enum.Enum):
    AVOID = "avoid"
    TOLERATE = "tolerate"
    ENJOY = "enjoy"


class RereadBehavior(str, enum.Enum):
    NEVER = "never"
    SOMETIMES = "sometimes"
    OFTEN = "often"


class WeekdaySkew(str, enum.Enum):
    NO_DIFF = "no_diff"
    MORE_WEEKDAY = "more_weekday"
    MORE_WEEKEND = "more_weekend"


class JourneyArchetype(str, enum.Enum):
    HERO_TRIUMPH = "hero_triumph"
    BITTERSWEET = "bittersweet"
    PURE_ESCAPISM = "pure_escapism"
    EMOTIONAL_CATHARSIS = "emotional_catharsis"
    THRILLER_RIDE = "thriller_ride"
    SLOW_DISCOVERY = "slow_discovery"
    BALANCED = "balanced"


class RecommendationSource(str, enum.Enum):
    AFFINITY = "affinity"
    TRENDING = "trending"
    PROFILE_MATCHED = "profile_matched"
    RECENCY = "recency"
    DAILY_PICK = "daily_pick"
    MOOD = "mood"


# ---------------------------------------------------------------------------
# Content Catalog (read-only to the engine)
# ---------------------------------------------------------------------------

class Item(Base):
    __tablename__ = "items"

    id = Column(String, primary_key=True, default=_uuid_str)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    author_name = Column(String, nullable=True)
    genre = Column(String, nullable=True, index=True)
    tags = Column(JSONType, nullable=True)
    cover_image_url = Column(String, nullable=True)
    is_published = Column(Boolean, nullable=False, default=True)
    published_at = Column(DateTime, nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    emotional_profile = relationship("ItemEmotionalProfile", back_populates="item", uselist=False)


class ItemEmotionalProfile(Base):
    __tablename__ = "item_emotional_profiles"

    item_id = Column(String, ForeignKey("items.id"), primary_key=True)
    emotional_arc = Column(JSONType, nullable=True)  # [{position, emotion, intensity}]
    peak_moments = Column(JSONType, nullable=True)  # [{position, emotion, description}]
    overall_tone = Column(String, nullable=True)
    tension_level = Column(String, nullable=True)  # low | medium | high
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    item = relationship("Item", back_populates="emotional_profile")


class ItemSimilarity(Base):
    """Precomputed "similar items" pairs maintained by the catalog."""
    __tablename__ = "item_similarities"

    id = Column(String, primary_key=True, default=_uuid_str)
    item_id_a = Column(String, ForeignKey("items.id"), nullable=False, index=True)
    item_id_b = Column(String, ForeignKey("items.id"), nullable=False, index=True)
    similarity_score = Column(Float, nullable=False)
    similarity_reasons = Column(JSONType, nullable=True)

    __table_args__ = (
        UniqueConstraint("item_id_a", "item_id_b", name="uq_item_similarities_pair"),
    )


class TrendingItem(Base):
    __tablename__ = "trending_items"

    id = Column(String, primary_key=True, default=_uuid_str)
    item_id = Column(String, ForeignKey("items.id"), nullable=False, index=True)
    period = Column(String, nullable=False, default="weekly", index=True)
    rank = Column(Integer, nullable=False)
    score = Column(Float, nullable=False, default=0.0)
    reads_count = Column(Integer, nullable=False, default=0)
    computed_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("period", "item_id", name="uq_trending_items_period_item"),
    )


# ---------------------------------------------------------------------------
# Event Log (append-only behavioral events)
# ---------------------------------------------------------------------------

class EmotionalEvent(Base):
    __tablename__ = "emotional_events"

    id = Column(String, primary_key=True, default=_uuid_str)
    user_id = Column(String, nullable=False, index=True)
    item_id = Column(String, nullable=False, index=True)
    chapter_id = Column(String, nullable=True)
    event_type = Column(String, nullable=False, index=True)
    emotional_context = Column(String, nullable=True)
    duration = Column(Float, nullable=True)
    occurred_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    created_at = Column(DateTime(timezone=True), server_default=sa.func.now(), nullable=False)

    __table_args__ = (
        sa.Index("idx_emotional_events_user_type_time", "user_id", "event_type", "occurred_at"),
    )


# ---------------------------------------------------------------------------
# Profile Store
# ---------------------------------------------------------------------------

class EmotionalFingerprintRecord(Base):
    """
    One fingerprint per user. Never deleted, only reset.
    `version` is bumped by every compare-and-swap update.
    """
    __tablename__ = "emotional_fingerprints"

    user_id = Column(String, primary_key=True)
    emotional_profile = Column(JSONType, nullable=False)
    pacing_profile = Column(JSONType, nullable=False)
    sensitivity_profile = Column(JSONType, nullable=False)
    engagement_signals = Column(JSONType, nullable=False)
    temporal_patterns = Column(JSONType, nullable=False)
    emotional_journey_preference = Column(String, nullable=False, default=JourneyArchetype.BALANCED.value)
    data_points = Column(Integer, nullable=False, default=0)
    confidence_score = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_updated = Column(DateTime, default=datetime.utcnow, nullable=False)


class ReadingPreference(Base):
    """Explicit (or lazily learned) genre preferences for a user."""
    __tablename__ = "reading_preferences"

    user_id = Column(String, primary_key=True)
    preferred_genres = Column(JSONType, nullable=True)
    disliked_genres = Column(JSONType, nullable=True)
    preferred_themes = Column(JSONType, nullable=True)
    preferred_mood = Column(JSONType, nullable=True)
    preferred_length = Column(String, nullable=False, default="any")
    reading_speed = Column(String, nullable=False, default="medium")
    learned = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class DailyPick(Base):
    __tablename__ = "daily_picks"

    id = Column(String, primary_key=True, default=_uuid_str)
    user_id = Column(String, nullable=False, index=True)
    pick_date = Column(Date, nullable=False, index=True)
    item_ids = Column(JSONType, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "pick_date", name="uq_daily_picks_user_date"),
    )


# ---------------------------------------------------------------------------
# Instrumentation
# ---------------------------------------------------------------------------

class EventLog(Base):
    __tablename__ = "event_logs"

    id = Column(String, primary_key=True, default=_uuid_str)
    created_at = Column(DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True)
    user_id = Column(String, nullable=True, index=True)
    event_name = Column(String, nullable=False, index=True)
    properties = Column(JSONType, nullable=True)
    request_id = Column(String, nullable=True)
    session_id = Column(String, nullable=True)
