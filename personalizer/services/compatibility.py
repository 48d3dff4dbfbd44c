"""
Compatibility scorer: how well one item's emotional shape fits one fingerprint.

`score` is pure and never raises for missing or partial content profiles;
absent data simply contributes nothing.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from personalizer.models import TensionLevel, ViolenceThreshold
from personalizer.schemas.content import ContentEmotionalProfile
from personalizer.schemas.fingerprint import EmotionalFingerprint
from personalizer.schemas.recommendation import CompatibilityResponse, CompatibilityResult
from personalizer.services import catalog, fingerprint_store
from personalizer.services.journey_classifier import JOURNEYS_BY_ARCHETYPE

logger = logging.getLogger(__name__)

BASE_SCORE = 50
TENSION_MATCH_BONUS = 15
TENSION_MISMATCH_PENALTY = 10
EMOTION_MATCH_BONUS = 10
EMOTION_INTENSITY_THRESHOLD = 60
VIOLENCE_PENALTY = 15

MAX_REASONS = 3
MAX_WARNINGS = 2

VIOLENCE_KEYWORDS = ("violence", "violent", "gore", "bloodshed", "murder", "torture")
OPPOSITE_TENSIONS = {
    (TensionLevel.HIGH, TensionLevel.LOW),
    (TensionLevel.LOW, TensionLevel.HIGH),
}


def _has_violence(content: ContentEmotionalProfile) -> bool:
    for moment in content.peak_moments:
        if (moment.emotion or "").strip().lower() == "fear":
            return True
        description = (moment.description or "").lower()
        if any(keyword in description for keyword in VIOLENCE_KEYWORDS):
            return True
    return False


def score(
    fingerprint: EmotionalFingerprint,
    content: Optional[ContentEmotionalProfile],
) -> CompatibilityResult:
    """
    Score an item against a fingerprint, starting from 50:

    1. tension level equals the preferred one: +15; opposite extremes: -10
    2. +10 per archetype-preferred emotion with an arc point above 60 intensity
    3. violence threshold "none" and a fear/violent peak moment: -15
    4. clamp to [0, 100]

    Reasons keep the first 3 found and warnings the first 2, in the order they
    were found.
    """
    if content is None:
        return CompatibilityResult()

    total = BASE_SCORE
    reasons: List[str] = []
    warnings: List[str] = []

    preferred_tension = fingerprint.pacing_profile.preferred_tension_level
    if content.tension_level is not None:
        if content.tension_level == preferred_tension:
            total += TENSION_MATCH_BONUS
            reasons.append("Matches your preferred tension level")
        elif (content.tension_level, preferred_tension) in OPPOSITE_TENSIONS:
            total -= TENSION_MISMATCH_PENALTY
            warnings.append("Tension level differs from your usual preference")

    journey = JOURNEYS_BY_ARCHETYPE[fingerprint.emotional_journey_preference]
    for emotion in journey.preferred_emotions:
        if any(
            point.emotion.strip().lower() == emotion.value and point.intensity > EMOTION_INTENSITY_THRESHOLD
            for point in content.emotional_arc
        ):
            total += EMOTION_MATCH_BONUS
            reasons.append(f"Contains {emotion.value} moments you enjoy")

    # Applies whatever the score is so far
    if fingerprint.sensitivity_profile.violence_threshold == ViolenceThreshold.NONE and _has_violence(content):
        total -= VIOLENCE_PENALTY
        warnings.append("May contain violence")

    return CompatibilityResult(
        score=max(0, min(100, total)),
        reasons=reasons[:MAX_REASONS],
        warnings=warnings[:MAX_WARNINGS],
    )


def score_compatibility(db: Session, user_id: str, item_id: str) -> CompatibilityResponse:
    """
    Score one catalog item for one user.

    An unknown item is not an error: it scores the neutral 50 with
    item_found=False.
    """
    fingerprint = fingerprint_store.get_or_create_fingerprint(db, user_id)
    item = catalog.get_item(db, item_id)
    if item is None:
        logger.info("Compatibility requested for unknown item=%s user=%s", item_id, user_id)
        return CompatibilityResponse(user_id=user_id, item_id=item_id, item_found=False)

    result = score(fingerprint, catalog.get_emotional_profile(db, item_id))
    return CompatibilityResponse(
        user_id=user_id,
        item_id=item_id,
        item_found=True,
        **result.model_dump(),
    )
