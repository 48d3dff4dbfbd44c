"""Event Log adapter: append and query behavioral events."""
import logging
from datetime import datetime
from typing import Iterable, List, Optional, Set

from sqlalchemy.orm import Session

from personalizer.models import EmotionalEvent, EventType
from personalizer.schemas.fingerprint import NormalizedEvent

logger = logging.getLogger(__name__)


def append_event(db: Session, user_id: str, event: NormalizedEvent) -> EmotionalEvent:
    """
    Append one normalized event.

    Note: flushes but does NOT commit. The caller owns the transaction.
    """
    record = EmotionalEvent(
        user_id=user_id,
        item_id=event.item_id,
        chapter_id=event.chapter_id,
        event_type=event.event_type.value,
        emotional_context=event.context_tag,
        duration=event.duration,
        occurred_at=event.occurred_at,
    )
    db.add(record)
    db.flush()
    return record


def query_events(
    db: Session,
    user_id: str,
    event_types: Optional[Iterable[EventType]] = None,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> List[EmotionalEvent]:
    """A user's events, newest first, optionally filtered by type and time window."""
    q = db.query(EmotionalEvent).filter(EmotionalEvent.user_id == user_id)
    if event_types is not None:
        q = q.filter(EmotionalEvent.event_type.in_([t.value for t in event_types]))
    if since is not None:
        q = q.filter(EmotionalEvent.occurred_at >= since)
    if until is not None:
        q = q.filter(EmotionalEvent.occurred_at < until)
    q = q.order_by(EmotionalEvent.occurred_at.desc(), EmotionalEvent.created_at.desc())
    if limit is not None:
        q = q.limit(limit)
    return q.all()


def get_completed_item_ids(db: Session, user_id: str, limit: Optional[int] = None) -> List[str]:
    """Distinct completed item ids, most recently completed first."""
    rows = (
        db.query(EmotionalEvent.item_id, EmotionalEvent.occurred_at)
        .filter(
            EmotionalEvent.user_id == user_id,
            EmotionalEvent.event_type == EventType.COMPLETE.value,
        )
        .order_by(EmotionalEvent.occurred_at.desc())
        .all()
    )
    item_ids: List[str] = []
    for item_id, _ in rows:
        if item_id in item_ids:
            continue
        item_ids.append(item_id)
        if limit is not None and len(item_ids) >= limit:
            break
    return item_ids


def get_interacted_item_ids(db: Session, user_id: str) -> Set[str]:
    """Every item the user has any event for (treated as "read")."""
    rows = (
        db.query(EmotionalEvent.item_id)
        .filter(EmotionalEvent.user_id == user_id)
        .distinct()
        .all()
    )
    return {row[0] for row in rows}
