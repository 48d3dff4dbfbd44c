"""
Journey classifier: maps a continuous emotional profile onto one of seven
discrete narrative-journey archetypes.

Each archetype is a `Journey` variant carrying its own weight vector, so the
table below is the single place to extend. `classify` is a pure function.
"""
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from personalizer.models import EmotionChannel, JourneyArchetype, PacePreference
from personalizer.schemas.fingerprint import EmotionalProfile, JourneyInfo, PacingProfile

BALANCED_BASELINE = 50.0
PACING_BOOST = 1.2
PACING_DAMPEN = 0.8


@dataclass(frozen=True)
class Journey:
    archetype: JourneyArchetype
    weights: Tuple[Tuple[EmotionChannel, float], ...]
    preferred_emotions: Tuple[EmotionChannel, ...]
    description: str
    narrative_structure: str
    avoided_patterns: Tuple[str, ...] = ()
    flat_score: Optional[float] = None

    def raw_score(self, profile: EmotionalProfile) -> float:
        if self.flat_score is not None:
            return self.flat_score
        return sum(profile.channel(channel) * weight for channel, weight in self.weights)


E = EmotionChannel

# Declaration order is the tie-break order among non-balanced archetypes.
JOURNEYS: Tuple[Journey, ...] = (
    Journey(
        archetype=JourneyArchetype.HERO_TRIUMPH,
        weights=((E.EXCITEMENT, 0.4), (E.JOY, 0.3), (E.TENSION, 0.3)),
        preferred_emotions=(E.EXCITEMENT, E.TENSION, E.JOY),
        description="You love stories where the protagonist overcomes great odds",
        narrative_structure="Challenge → Struggle → Victory",
        avoided_patterns=("unresolved_ending", "protagonist_fails"),
    ),
    Journey(
        archetype=JourneyArchetype.BITTERSWEET,
        weights=((E.SADNESS, 0.4), (E.JOY, 0.3), (E.NOSTALGIA, 0.3)),
        preferred_emotions=(E.JOY, E.SADNESS, E.NOSTALGIA),
        description="You appreciate emotional complexity and realistic outcomes",
        narrative_structure="Hope → Challenge → Mixed Resolution",
        avoided_patterns=("pure_happy_ending", "pure_tragedy"),
    ),
    Journey(
        archetype=JourneyArchetype.PURE_ESCAPISM,
        weights=((E.JOY, 0.5), (E.WONDER, 0.3), (E.ROMANCE, 0.2)),
        preferred_emotions=(E.JOY, E.WONDER, E.ROMANCE),
        description="You read to feel good and escape everyday stress",
        narrative_structure="Fun → Adventure → Happy Ending",
        avoided_patterns=("character_death", "dark_themes", "tragedy"),
    ),
    Journey(
        archetype=JourneyArchetype.EMOTIONAL_CATHARSIS,
        weights=((E.SADNESS, 0.4), (E.NOSTALGIA, 0.3), (E.WONDER, 0.3)),
        preferred_emotions=(E.SADNESS, E.WONDER, E.NOSTALGIA),
        description="You seek deep emotional experiences that move you",
        narrative_structure="Setup → Deep Dive → Emotional Release",
        avoided_patterns=("shallow_emotions", "quick_resolution"),
    ),
    Journey(
        archetype=JourneyArchetype.THRILLER_RIDE,
        weights=((E.EXCITEMENT, 0.4), (E.FEAR, 0.3), (E.TENSION, 0.3)),
        preferred_emotions=(E.EXCITEMENT, E.FEAR, E.TENSION),
        description="You crave constant excitement and unpredictability",
        narrative_structure="Hook → Escalation → Twist → Climax",
        avoided_patterns=("slow_pacing", "predictable_outcomes"),
    ),
    Journey(
        archetype=JourneyArchetype.SLOW_DISCOVERY,
        weights=((E.WONDER, 0.4), (E.NOSTALGIA, 0.3), (E.ROMANCE, 0.3)),
        preferred_emotions=(E.WONDER, E.NOSTALGIA, E.ROMANCE),
        description="You enjoy gradual revelation and character development",
        narrative_structure="Mystery → Exploration → Understanding",
        avoided_patterns=("rushed_pacing", "action_heavy"),
    ),
    Journey(
        archetype=JourneyArchetype.BALANCED,
        weights=(),
        preferred_emotions=(E.JOY, E.EXCITEMENT, E.WONDER),
        description="You appreciate variety and well-crafted storytelling",
        narrative_structure="Varied and Dynamic",
        flat_score=BALANCED_BASELINE,
    ),
)

JOURNEYS_BY_ARCHETYPE: Dict[JourneyArchetype, Journey] = {j.archetype: j for j in JOURNEYS}

# Multipliers applied per pace preference; archetypes not listed stay at 1.0
PACING_MULTIPLIERS: Dict[PacePreference, Dict[JourneyArchetype, float]] = {
    PacePreference.FAST_PACED: {
        JourneyArchetype.THRILLER_RIDE: PACING_BOOST,
        JourneyArchetype.SLOW_DISCOVERY: PACING_DAMPEN,
    },
    PacePreference.SLOW_BURN: {
        JourneyArchetype.SLOW_DISCOVERY: PACING_BOOST,
        JourneyArchetype.THRILLER_RIDE: PACING_DAMPEN,
    },
    PacePreference.BALANCED: {},
}


def journey_scores(
    emotional_profile: EmotionalProfile,
    pacing_profile: PacingProfile,
) -> Dict[JourneyArchetype, float]:
    """Score every archetype, pacing multiplier included."""
    multipliers = PACING_MULTIPLIERS.get(pacing_profile.action_pace_pref, {})
    scores: Dict[JourneyArchetype, float] = {}
    for journey in JOURNEYS:
        score = journey.raw_score(emotional_profile) * multipliers.get(journey.archetype, 1.0)
        # Rounded so float noise in the weights can't decide a tie
        scores[journey.archetype] = round(score, 6)
    return scores


def classify(emotional_profile: EmotionalProfile, pacing_profile: PacingProfile) -> JourneyArchetype:
    """
    Return the archetype with the strictly highest score.

    `balanced` holds the baseline and is only displaced by a strictly greater
    score, so ties always resolve to `balanced`.
    """
    scores = journey_scores(emotional_profile, pacing_profile)
    best = JourneyArchetype.BALANCED
    best_score = scores[JourneyArchetype.BALANCED]
    for journey in JOURNEYS:
        if journey.archetype is JourneyArchetype.BALANCED:
            continue
        score = scores[journey.archetype]
        if score > best_score:
            best = journey.archetype
            best_score = score
    return best


def get_journey_info(archetype: JourneyArchetype) -> JourneyInfo:
    journey = JOURNEYS_BY_ARCHETYPE[archetype]
    return JourneyInfo(
        archetype=journey.archetype,
        description=journey.description,
        narrative_structure=journey.narrative_structure,
        preferred_emotions=list(journey.preferred_emotions),
        avoided_patterns=list(journey.avoided_patterns),
    )
