"""Tests for event validation and normalization."""
from datetime import datetime, timedelta, timezone

import pytest

from personalizer.models import EmotionChannel, EventType
from personalizer.schemas.fingerprint import EmotionalEventIn
from personalizer.services.event_ingestor import (
    EventValidationError,
    normalize_event,
    normalize_tag,
    parse_event_type,
    resolve_channel,
)

NOW = datetime(2026, 3, 1, 12, 0, 0)


def test_normalize_tag_snake_cases_and_strips():
    """Free-text tags are lowercased and snake_cased; junk characters are dropped."""
    assert normalize_tag("  Plot Twist! ") == "plot_twist"
    assert normalize_tag("slow-burn") == "slow_burn"
    assert normalize_tag("   ") is None
    assert normalize_tag(None) is None


def test_resolve_channel_uses_channel_names_and_aliases():
    """Channel names map directly and common synonyms map through the alias table."""
    assert resolve_channel("joy") == EmotionChannel.JOY
    assert resolve_channel("scary") == EmotionChannel.FEAR
    assert resolve_channel("cliffhanger") == EmotionChannel.TENSION
    assert resolve_channel("plot_twist") is None


def test_parse_event_type_accepts_aliases():
    """Canonical names and known aliases both parse."""
    assert parse_event_type("reread") == EventType.REREAD
    assert parse_event_type("Re-Read") == EventType.REREAD
    assert parse_event_type("finished") == EventType.COMPLETE


def test_parse_event_type_rejects_unknown():
    """An unknown event type is a validation error naming the allowed values."""
    with pytest.raises(EventValidationError) as exc:
        parse_event_type("teleport")
    assert "chapter_end" in str(exc.value)


def test_normalize_event_requires_item_id():
    """A blank item id is rejected."""
    with pytest.raises(EventValidationError):
        normalize_event(EmotionalEventIn(event_type="pause", item_id="  "), now=NOW)


def test_normalize_event_resolves_channel_and_keeps_unmapped_tag():
    """Recognized tags carry a channel; unrecognized tags keep their text with no channel."""
    mapped = normalize_event(EmotionalEventIn(event_type="reread", item_id="s1", emotional_context="Happy"), now=NOW)
    assert mapped.context_tag == "happy"
    assert mapped.channel == EmotionChannel.JOY

    unmapped = normalize_event(EmotionalEventIn(event_type="reread", item_id="s1", emotional_context="Plot Twist"), now=NOW)
    assert unmapped.context_tag == "plot_twist"
    assert unmapped.channel is None


def test_normalize_event_clamps_negative_duration():
    """Negative durations are clamped to zero, not rejected."""
    event = normalize_event(EmotionalEventIn(event_type="pause", item_id="s1", duration=-4.5), now=NOW)
    assert event.duration == 0.0


def test_normalize_event_timestamps_are_naive_utc_and_not_in_future():
    """Aware timestamps convert to naive UTC; future timestamps are capped at now."""
    aware = datetime(2026, 3, 1, 13, 0, 0, tzinfo=timezone(timedelta(hours=2)))
    event = normalize_event(EmotionalEventIn(event_type="pause", item_id="s1", timestamp=aware), now=NOW)
    assert event.occurred_at == datetime(2026, 3, 1, 11, 0, 0)

    future = normalize_event(
        EmotionalEventIn(event_type="pause", item_id="s1", timestamp=NOW + timedelta(days=1)), now=NOW
    )
    assert future.occurred_at == NOW

    missing = normalize_event(EmotionalEventIn(event_type="pause", item_id="s1"), now=NOW)
    assert missing.occurred_at == NOW
