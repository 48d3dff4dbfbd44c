"""
Reading preferences: the explicit genre record the profile-matched generator
prefers, and the lazy learner that derives one from completion history when
none is stored yet.
"""
import logging
from collections import Counter
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from personalizer.models import ReadingPreference
from personalizer.schemas.preferences import ReadingPreferences, ReadingPreferencesUpdate
from personalizer.services import catalog, event_log

logger = logging.getLogger(__name__)

LEARNING_HISTORY_LIMIT = 50
TOP_GENRES = 5


def _to_preferences(record: ReadingPreference) -> ReadingPreferences:
    return ReadingPreferences(
        preferred_genres=record.preferred_genres or [],
        disliked_genres=record.disliked_genres or [],
        preferred_themes=record.preferred_themes or [],
        preferred_mood=record.preferred_mood or [],
        preferred_length=record.preferred_length or "any",
        reading_speed=record.reading_speed or "medium",
        learned=bool(record.learned),
    )


def get_preferences(db: Session, user_id: str) -> Optional[ReadingPreferences]:
    record = db.get(ReadingPreference, user_id)
    return _to_preferences(record) if record else None


def learn_preferences(db: Session, user_id: str) -> ReadingPreferences:
    """
    Derive preferred genres from the user's completed items (top 5 by count)
    and persist them as a learned record.

    An empty history yields empty preferences and nothing is stored, so the
    next call gets another chance to learn.
    """
    completed_ids = event_log.get_completed_item_ids(db, user_id, limit=LEARNING_HISTORY_LIMIT)
    if not completed_ids:
        return ReadingPreferences()

    genre_counts = Counter(genre for genre in catalog.get_genres(db, completed_ids) if genre)
    # most_common keeps first-seen order among equal counts
    preferences = ReadingPreferences(
        preferred_genres=[genre for genre, _ in genre_counts.most_common(TOP_GENRES)],
        learned=True,
    )
    if not preferences.preferred_genres:
        return preferences

    db.add(ReadingPreference(
        user_id=user_id,
        preferred_genres=preferences.preferred_genres,
        disliked_genres=[],
        preferred_themes=[],
        preferred_mood=[],
        learned=True,
    ))
    try:
        db.commit()
        logger.info("Learned genre preferences for user=%s genres=%s", user_id, preferences.preferred_genres)
    except IntegrityError:
        # Race condition: an explicit or concurrently learned record landed first
        db.rollback()
        stored = get_preferences(db, user_id)
        if stored is not None:
            return stored
        raise
    return preferences


def get_or_learn_preferences(db: Session, user_id: str) -> ReadingPreferences:
    stored = get_preferences(db, user_id)
    if stored is not None:
        return stored
    return learn_preferences(db, user_id)


def upsert_preferences(db: Session, user_id: str, update: ReadingPreferencesUpdate) -> ReadingPreferences:
    """Set explicit preferences. Fields left as None keep their current value."""
    record = db.get(ReadingPreference, user_id)
    if record is None:
        record = ReadingPreference(
            user_id=user_id,
            preferred_genres=[],
            disliked_genres=[],
            preferred_themes=[],
            preferred_mood=[],
        )
        db.add(record)

    for field, value in update.model_dump(exclude_none=True).items():
        setattr(record, field, value)
    record.learned = False
    record.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(record)
    return _to_preferences(record)
