"""
Fingerprint updater: applies one normalized event to a fingerprint.

`apply` is a pure function of (fingerprint, event). It returns a new
fingerprint and never touches storage; persistence is the caller's job.
"""
import logging
from typing import Dict, List, Optional

from personalizer.models import EmotionChannel, EventType
from personalizer.schemas.fingerprint import (
    EmotionalFingerprint,
    EmotionalProfile,
    EngagementSignals,
    NormalizedEvent,
)
from personalizer.services.journey_classifier import classify

logger = logging.getLogger(__name__)

CHANNEL_MIN = 0
CHANNEL_MAX = 100

REREAD_DELTA = 5
SKIP_DELTA = -5
INTENSE_PAUSE_DELTA = 2
INTENSE_PAUSE_CONTEXT = "intense"

# Starting value for a context tag that has no channel yet
REREAD_DEFAULT_BASE = 55
SKIP_DEFAULT_BASE = 45

MAX_SIGNAL_TAGS = 10
MAX_UNMAPPED_CHANNELS = 10

# Archetype is re-derived only once data_points exceeds this
ARCHETYPE_MIN_DATA_POINTS = 50


def clamp(value: float, low: int = CHANNEL_MIN, high: int = CHANNEL_MAX) -> int:
    return int(max(low, min(high, value)))


def compute_confidence(data_points: int) -> int:
    return min(100, (data_points // 10) * 10)


def push_bounded(tags: List[str], tag: str, cap: int = MAX_SIGNAL_TAGS) -> List[str]:
    """Insert-if-absent, then keep only the most recent `cap` tags."""
    updated = list(tags)
    if tag not in updated:
        updated.append(tag)
    return updated[-cap:]


def _shift_channel(
    profile: EmotionalProfile,
    channel: Optional[EmotionChannel],
    tag: str,
    delta: int,
    default_base: int,
) -> EmotionalProfile:
    if channel is not None:
        return profile.model_copy(update={channel.value: clamp(profile.channel(channel) + delta)})

    unmapped: Dict[str, int] = dict(profile.unmapped_channels)
    if tag in unmapped:
        unmapped[tag] = clamp(unmapped[tag] + delta)
    else:
        unmapped[tag] = clamp(default_base)
        while len(unmapped) > MAX_UNMAPPED_CHANNELS:
            # dicts keep insertion order: drop the oldest tag
            unmapped.pop(next(iter(unmapped)))
    return profile.model_copy(update={"unmapped_channels": unmapped})


def apply(fingerprint: EmotionalFingerprint, event: NormalizedEvent) -> EmotionalFingerprint:
    """
    Apply one event and return the next fingerprint state.

    Effects by event type (all numeric effects are clamped, nothing is rejected):
    - reread + tag: channel +5 (unrecognized tag: starts at 55)
    - skip + tag: channel -5 (unrecognized tag: starts at 45)
    - pause + "intense": tension +2
    - abandon + tag: tag pushed onto abandonment_triggers (max 10)
    - chapter_end + tag: tag pushed onto completion_motivators (max 10)
    Every event increments data_points and recomputes confidence. The journey
    archetype is re-derived only when data_points > 50.
    """
    emotional_profile = fingerprint.emotional_profile
    engagement: EngagementSignals = fingerprint.engagement_signals
    tag = event.context_tag

    if event.event_type == EventType.REREAD and tag:
        emotional_profile = _shift_channel(
            emotional_profile, event.channel, tag, REREAD_DELTA, REREAD_DEFAULT_BASE
        )
    elif event.event_type == EventType.SKIP and tag:
        emotional_profile = _shift_channel(
            emotional_profile, event.channel, tag, SKIP_DELTA, SKIP_DEFAULT_BASE
        )
    elif event.event_type == EventType.PAUSE and tag == INTENSE_PAUSE_CONTEXT:
        emotional_profile = emotional_profile.model_copy(
            update={"tension": clamp(emotional_profile.tension + INTENSE_PAUSE_DELTA)}
        )
    elif event.event_type == EventType.ABANDON and tag:
        engagement = engagement.model_copy(
            update={"abandonment_triggers": push_bounded(engagement.abandonment_triggers, tag)}
        )
    elif event.event_type == EventType.CHAPTER_END and tag:
        engagement = engagement.model_copy(
            update={"completion_motivators": push_bounded(engagement.completion_motivators, tag)}
        )

    data_points = fingerprint.data_points + 1
    journey = fingerprint.emotional_journey_preference
    if data_points > ARCHETYPE_MIN_DATA_POINTS:
        journey = classify(emotional_profile, fingerprint.pacing_profile)
        if journey != fingerprint.emotional_journey_preference:
            logger.info(
                "Journey preference changed user=%s %s -> %s (data_points=%s)",
                fingerprint.user_id,
                fingerprint.emotional_journey_preference.value,
                journey.value,
                data_points,
            )

    return fingerprint.model_copy(
        update={
            "emotional_profile": emotional_profile,
            "engagement_signals": engagement,
            "emotional_journey_preference": journey,
            "data_points": data_points,
            "confidence_score": compute_confidence(data_points),
            "last_updated": event.occurred_at,
        }
    )
