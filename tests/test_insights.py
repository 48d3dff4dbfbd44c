"""Tests for the fingerprint insights summary."""
from personalizer.models import JourneyArchetype
from personalizer.schemas.fingerprint import EmotionalFingerprint, EmotionalProfile
from personalizer.services.insights import build_insights, emotional_range


def test_default_fingerprint_insights():
    """A fresh fingerprint is flat: narrow range, joy dominant by order, no insights."""
    insights = build_insights(EmotionalFingerprint(user_id="u1"))
    assert [p.emotion for p in insights.radar_data][:3] == ["Joy", "Sadness", "Excitement"]
    assert len(insights.radar_data) == 8
    assert insights.dominant_emotion == "joy"
    assert insights.emotional_range == "narrow"
    assert insights.insights == []
    assert insights.journey.archetype == JourneyArchetype.BALANCED


def test_dominant_emotion_and_capped_insights():
    """The highest channel dominates and at most four insights are listed."""
    profile = EmotionalProfile(joy=80, sadness=75, excitement=90, fear=71, romance=85, wonder=10, tension=5)
    fp = EmotionalFingerprint(user_id="u1", emotional_profile=profile)
    insights = build_insights(fp)
    assert insights.dominant_emotion == "excitement"
    assert insights.insights == [
        "You gravitate towards uplifting stories",
        "You appreciate emotional depth",
        "You thrive on action and adventure",
        "You enjoy a good thrill",
    ]
    assert insights.emotional_range == "wide"


def test_emotional_range_bands():
    """Population standard deviation under 10 is narrow, over 25 is wide."""
    assert emotional_range([50] * 8) == "narrow"
    assert emotional_range([30, 70] * 4) == "moderate"
    assert emotional_range([0, 100] * 4) == "wide"
