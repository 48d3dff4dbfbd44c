"""Human-readable summary of a fingerprint for profile pages."""
import math
from typing import List, Tuple

from personalizer.models import EmotionChannel
from personalizer.schemas.fingerprint import EmotionalFingerprint, FingerprintInsights, RadarPoint
from personalizer.services.journey_classifier import get_journey_info

NARROW_RANGE_STDDEV = 10
WIDE_RANGE_STDDEV = 25
INSIGHT_THRESHOLD = 70
MAX_INSIGHTS = 4

CHANNEL_INSIGHTS: Tuple[Tuple[EmotionChannel, str], ...] = (
    (EmotionChannel.JOY, "You gravitate towards uplifting stories"),
    (EmotionChannel.SADNESS, "You appreciate emotional depth"),
    (EmotionChannel.EXCITEMENT, "You thrive on action and adventure"),
    (EmotionChannel.FEAR, "You enjoy a good thrill"),
    (EmotionChannel.ROMANCE, "Love stories resonate with you"),
    (EmotionChannel.WONDER, "You're drawn to magical and fantastical"),
    (EmotionChannel.TENSION, "You handle high-stakes well"),
    (EmotionChannel.NOSTALGIA, "You connect with coming-of-age themes"),
)


def emotional_range(values: List[int]) -> str:
    if not values:
        return "moderate"
    mean = sum(values) / len(values)
    std_dev = math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))
    if std_dev < NARROW_RANGE_STDDEV:
        return "narrow"
    if std_dev > WIDE_RANGE_STDDEV:
        return "wide"
    return "moderate"


def build_insights(fingerprint: EmotionalFingerprint) -> FingerprintInsights:
    channels = fingerprint.emotional_profile.channels()
    radar = [RadarPoint(emotion=channel.value.capitalize(), value=value) for channel, value in channels.items()]

    # First channel with the maximum value wins
    dominant = radar[0]
    for point in radar[1:]:
        if point.value > dominant.value:
            dominant = point

    insights = [text for channel, text in CHANNEL_INSIGHTS if channels[channel] > INSIGHT_THRESHOLD]

    return FingerprintInsights(
        radar_data=radar,
        dominant_emotion=dominant.emotion.lower(),
        emotional_range=emotional_range(list(channels.values())),
        insights=insights[:MAX_INSIGHTS],
        journey=get_journey_info(fingerprint.emotional_journey_preference),
        confidence_score=fingerprint.confidence_score,
    )
