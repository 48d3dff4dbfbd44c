"""
Fingerprint service: the write path for behavioral events and profile resets.

Updates are serialized per user with optimistic concurrency: read the record
and its version, apply the change in memory, then compare-and-swap. A lost
race re-reads and re-applies, up to PROFILE_UPDATE_MAX_RETRIES attempts.
Different users never contend.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from personalizer.core.config import settings
from personalizer.models import EmotionalEvent
from personalizer.schemas.fingerprint import EmotionalEventIn, EmotionalFingerprint, NormalizedEvent
from personalizer.services import event_log, fingerprint_store
from personalizer.services.event_ingestor import normalize_event, parse_event_type
from personalizer.services.fingerprint_updater import apply, compute_confidence
from personalizer.utils.instrumentation import log_event

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


class ProfileUpdateConflictError(Exception):
    """Raised when a fingerprint update keeps losing the version race."""
    pass


def get_fingerprint(db: Session, user_id: str) -> EmotionalFingerprint:
    return fingerprint_store.get_or_create_fingerprint(db, user_id)


def record_event(
    db: Session,
    user_id: str,
    event_in: EmotionalEventIn,
    max_retries: Optional[int] = None,
) -> EmotionalFingerprint:
    """
    Normalize one event, append it to the event log and fold it into the
    user's fingerprint.

    The event row and the fingerprint update commit together, so an event is
    never logged without being counted (or counted twice).

    Raises:
        EventValidationError: the event could not be normalized.
        ProfileUpdateConflictError: every attempt lost the version race.
    """
    return apply_event(db, user_id, normalize_event(event_in), max_retries=max_retries)


def apply_event(
    db: Session,
    user_id: str,
    event: NormalizedEvent,
    max_retries: Optional[int] = None,
) -> EmotionalFingerprint:
    """Append an already normalized event and CAS-update the fingerprint, retrying on conflict."""
    if max_retries is None:
        max_retries = settings.PROFILE_UPDATE_MAX_RETRIES
    for attempt in range(1, max_retries + 1):
        current = fingerprint_store.get_or_create_fingerprint(db, user_id)
        updated = apply(current, event)
        event_log.append_event(db, user_id, event)
        if fingerprint_store.compare_and_swap(db, updated, current.version):
            logger.debug(
                "Applied event user=%s type=%s data_points=%s attempt=%s",
                user_id,
                event.event_type.value,
                updated.data_points,
                attempt,
            )
            return updated.model_copy(update={"version": current.version + 1})
        logger.info("Fingerprint version conflict user=%s attempt=%s/%s", user_id, attempt, max_retries)

    logger.warning("Giving up on fingerprint update user=%s after %s attempts", user_id, max_retries)
    raise ProfileUpdateConflictError(f"Fingerprint for user {user_id} is being updated concurrently, retry later")


def reset_fingerprint(db: Session, user_id: str, max_retries: Optional[int] = None) -> EmotionalFingerprint:
    """
    Reinitialize a fingerprint to defaults.

    data_points is carried over (it never decreases) and confidence follows
    from it; every profile channel and the archetype go back to default.
    """
    if max_retries is None:
        max_retries = settings.PROFILE_UPDATE_MAX_RETRIES
    for attempt in range(1, max_retries + 1):
        current = fingerprint_store.get_or_create_fingerprint(db, user_id)
        fresh = EmotionalFingerprint(
            user_id=user_id,
            data_points=current.data_points,
            confidence_score=compute_confidence(current.data_points),
            last_updated=datetime.utcnow(),
        )
        log_event(db, "fingerprint_reset", user_id=user_id, properties={"data_points": current.data_points})
        if fingerprint_store.compare_and_swap(db, fresh, current.version):
            logger.info("Reset fingerprint user=%s", user_id)
            return fresh.model_copy(update={"version": current.version + 1})
        logger.info("Fingerprint version conflict on reset user=%s attempt=%s/%s", user_id, attempt, max_retries)

    raise ProfileUpdateConflictError(f"Fingerprint for user {user_id} is being updated concurrently, retry later")


def get_event_history(
    db: Session,
    user_id: str,
    event_type: Optional[str] = None,
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> List[EmotionalEvent]:
    """
    Raises:
        EventValidationError: event_type is given but unknown.
    """
    event_types = [parse_event_type(event_type)] if event_type else None
    return event_log.query_events(db, user_id, event_types=event_types, limit=limit)
