"""
Fingerprint store adapter: the persistence boundary for emotional fingerprints.

- get_or_create_fingerprint: lazily creates the default profile on first access
  and is safe under concurrent first access (IntegrityError -> read back).
- compare_and_swap: writes a new state only if the stored version still matches
  the version the caller read, bumping the version on success.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from personalizer.models import EmotionalFingerprintRecord
from personalizer.schemas.fingerprint import (
    EmotionalFingerprint,
    EmotionalProfile,
    EngagementSignals,
    PacingProfile,
    SensitivityProfile,
    TemporalPatterns,
)

logger = logging.getLogger(__name__)


def _to_fingerprint(record: EmotionalFingerprintRecord) -> EmotionalFingerprint:
    return EmotionalFingerprint(
        user_id=record.user_id,
        emotional_profile=EmotionalProfile.model_validate(record.emotional_profile or {}),
        pacing_profile=PacingProfile.model_validate(record.pacing_profile or {}),
        sensitivity_profile=SensitivityProfile.model_validate(record.sensitivity_profile or {}),
        engagement_signals=EngagementSignals.model_validate(record.engagement_signals or {}),
        temporal_patterns=TemporalPatterns.model_validate(record.temporal_patterns or {}),
        emotional_journey_preference=record.emotional_journey_preference,
        data_points=record.data_points or 0,
        confidence_score=record.confidence_score or 0,
        version=record.version,
        last_updated=record.last_updated,
    )


def _state_columns(fingerprint: EmotionalFingerprint) -> dict:
    """Column values for a fingerprint state (everything except key and version)."""
    return {
        "emotional_profile": fingerprint.emotional_profile.model_dump(mode="json"),
        "pacing_profile": fingerprint.pacing_profile.model_dump(mode="json"),
        "sensitivity_profile": fingerprint.sensitivity_profile.model_dump(mode="json"),
        "engagement_signals": fingerprint.engagement_signals.model_dump(mode="json"),
        "temporal_patterns": fingerprint.temporal_patterns.model_dump(mode="json"),
        "emotional_journey_preference": fingerprint.emotional_journey_preference.value,
        "data_points": fingerprint.data_points,
        "confidence_score": fingerprint.confidence_score,
        "last_updated": fingerprint.last_updated or datetime.utcnow(),
    }


def get_fingerprint(db: Session, user_id: str) -> Optional[EmotionalFingerprint]:
    record = db.get(EmotionalFingerprintRecord, user_id)
    if record is None:
        return None
    return _to_fingerprint(record)


def get_or_create_fingerprint(db: Session, user_id: str) -> EmotionalFingerprint:
    """
    Return the user's fingerprint, creating the default one on first access.

    Idempotent under concurrent first access: if another request inserts the
    row between our read and our insert, we roll back and read theirs.
    """
    existing = get_fingerprint(db, user_id)
    if existing is not None:
        return existing

    default = EmotionalFingerprint(user_id=user_id, last_updated=datetime.utcnow())
    record = EmotionalFingerprintRecord(user_id=user_id, version=1, **_state_columns(default))
    db.add(record)
    try:
        db.commit()
        logger.info("Initialized emotional fingerprint for user=%s", user_id)
    except IntegrityError:
        # Race condition: another request created it first
        db.rollback()
        logger.debug("Fingerprint created concurrently, reading back user=%s", user_id)
        existing = get_fingerprint(db, user_id)
        if existing is None:
            raise
        return existing
    return _to_fingerprint(record)


def compare_and_swap(db: Session, fingerprint: EmotionalFingerprint, expected_version: int) -> bool:
    """
    Atomically persist `fingerprint` if the stored version equals `expected_version`.

    Returns:
        True if the write landed (version is now expected_version + 1),
        False if someone else updated the record first.
    """
    result = db.execute(
        update(EmotionalFingerprintRecord)
        .where(
            EmotionalFingerprintRecord.user_id == fingerprint.user_id,
            EmotionalFingerprintRecord.version == expected_version,
        )
        .values(version=expected_version + 1, **_state_columns(fingerprint))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        return False
    db.commit()
    return True
