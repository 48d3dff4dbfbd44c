"""
Event ingestor: validates a raw behavioral event and normalizes it into the
canonical shape the fingerprint updater consumes.

Context tags are resolved through a closed alias table onto the eight
emotion channels. Tags that do not resolve keep their normalized text in
`context_tag` with `channel=None`; the updater routes those to its
unrecognized-tag fallback instead of erroring.
"""
import logging
import re
from datetime import datetime, timezone
from typing import Dict, Optional

from personalizer.models import EmotionChannel, EventType
from personalizer.schemas.fingerprint import EmotionalEventIn, NormalizedEvent

logger = logging.getLogger(__name__)

MAX_CONTEXT_TAG_LENGTH = 64


class EventValidationError(ValueError):
    """Raised when an event cannot be normalized (unknown type, missing item)."""
    pass


EVENT_TYPE_ALIASES: Dict[str, EventType] = {
    "speedup": EventType.SPEED_UP,
    "slowdown": EventType.SLOW_DOWN,
    "re_read": EventType.REREAD,
    "chapter_complete": EventType.CHAPTER_END,
    "chapter_completed": EventType.CHAPTER_END,
    "completed": EventType.COMPLETE,
    "completion": EventType.COMPLETE,
    "completed_story": EventType.COMPLETE,
    "finish": EventType.COMPLETE,
    "finished": EventType.COMPLETE,
    "abandoned": EventType.ABANDON,
    "skipped": EventType.SKIP,
    "paused": EventType.PAUSE,
}

CONTEXT_CHANNEL_ALIASES: Dict[str, EmotionChannel] = {
    "happy": EmotionChannel.JOY,
    "happiness": EmotionChannel.JOY,
    "funny": EmotionChannel.JOY,
    "humor": EmotionChannel.JOY,
    "sad": EmotionChannel.SADNESS,
    "grief": EmotionChannel.SADNESS,
    "melancholy": EmotionChannel.SADNESS,
    "tragic": EmotionChannel.SADNESS,
    "exciting": EmotionChannel.EXCITEMENT,
    "action": EmotionChannel.EXCITEMENT,
    "adventure": EmotionChannel.EXCITEMENT,
    "thrill": EmotionChannel.EXCITEMENT,
    "scary": EmotionChannel.FEAR,
    "horror": EmotionChannel.FEAR,
    "dread": EmotionChannel.FEAR,
    "creepy": EmotionChannel.FEAR,
    "love": EmotionChannel.ROMANCE,
    "romantic": EmotionChannel.ROMANCE,
    "nostalgic": EmotionChannel.NOSTALGIA,
    "memories": EmotionChannel.NOSTALGIA,
    "awe": EmotionChannel.WONDER,
    "magic": EmotionChannel.WONDER,
    "curiosity": EmotionChannel.WONDER,
    "mystery": EmotionChannel.WONDER,
    "suspense": EmotionChannel.TENSION,
    "intense": EmotionChannel.TENSION,
    "cliffhanger": EmotionChannel.TENSION,
}


def normalize_tag(raw: Optional[str]) -> Optional[str]:
    """Lowercase, trim and snake_case a free-text tag. Empty tags become None."""
    if raw is None:
        return None
    tag = re.sub(r"[\s\-]+", "_", raw.strip().lower())
    tag = re.sub(r"[^a-z0-9_]", "", tag).strip("_")
    if not tag:
        return None
    return tag[:MAX_CONTEXT_TAG_LENGTH]


def resolve_channel(tag: Optional[str]) -> Optional[EmotionChannel]:
    if tag is None:
        return None
    try:
        return EmotionChannel(tag)
    except ValueError:
        return CONTEXT_CHANNEL_ALIASES.get(tag)


def parse_event_type(raw: str) -> EventType:
    key = normalize_tag(raw)
    if key is None:
        raise EventValidationError("event_type is required")
    try:
        return EventType(key)
    except ValueError:
        pass
    if key in EVENT_TYPE_ALIASES:
        return EVENT_TYPE_ALIASES[key]
    allowed = ", ".join(e.value for e in EventType)
    raise EventValidationError(
        f"Invalid event_type value: {raw!r}. Allowed values are: {allowed}"
    )


def _to_naive_utc(value: Optional[datetime], now: datetime) -> datetime:
    if value is None:
        return now
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    # Clock skew: events can't happen in the future
    return min(value, now)


def normalize_event(event: EmotionalEventIn, now: Optional[datetime] = None) -> NormalizedEvent:
    """
    Validate and normalize one raw event.

    Raises:
        EventValidationError: unknown event type or missing item id.

    Numeric fields are never rejected: a negative duration is clamped to 0.
    """
    now = now or datetime.utcnow()
    event_type = parse_event_type(event.event_type)

    item_id = (event.item_id or "").strip()
    if not item_id:
        raise EventValidationError("item_id is required")

    context_tag = normalize_tag(event.emotional_context)
    channel = resolve_channel(context_tag)
    if context_tag and channel is None:
        logger.debug("Unrecognized emotional context tag=%s event_type=%s", context_tag, event_type.value)

    duration = event.duration
    if duration is not None and duration < 0:
        duration = 0.0

    chapter_id = (event.chapter_id or "").strip() or None

    return NormalizedEvent(
        event_type=event_type,
        item_id=item_id,
        chapter_id=chapter_id,
        context_tag=context_tag,
        channel=channel,
        duration=duration,
        occurred_at=_to_naive_utc(event.timestamp, now),
    )
