"""
Candidate generators.

Four independent strategies, each `generator(db, user_id, limit, now)` returning
at most `limit` Candidates with a score in [0, 1]. None of them reads another's
output, and each returns [] when its upstream data is empty.

`mood_candidates` sits outside the fan-out: it answers an explicit "what fits
my mood" request and takes the mood instead of a clock.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Set

from sqlalchemy.orm import Session

from personalizer.models import RecommendationSource
from personalizer.schemas.content import ItemSummary
from personalizer.services import catalog, event_log, preferences

logger = logging.getLogger(__name__)

AFFINITY_SOURCE_ITEMS = 5
PROFILE_MATCH_SCORE = 0.7
RECENCY_SCORE = 0.6
RECENCY_WINDOW = timedelta(days=7)


@dataclass
class Candidate:
    item: ItemSummary
    score: float
    reason: str
    source: RecommendationSource
    source_item_title: Optional[str] = None


Generator = Callable[[Session, str, int, datetime], List[Candidate]]


def _unit(value: Optional[float]) -> float:
    return max(0.0, min(1.0, float(value or 0.0)))


def affinity_candidates(db: Session, user_id: str, limit: int, now: datetime) -> List[Candidate]:
    """Items the catalog declares similar to the user's most recent completions."""
    if limit <= 0:
        return []
    recent_completed = event_log.get_completed_item_ids(db, user_id, limit=AFFINITY_SOURCE_ITEMS)
    if not recent_completed:
        return []

    completed: Set[str] = set(event_log.get_completed_item_ids(db, user_id))
    pairs = catalog.get_similar_items(db, recent_completed, limit=limit * 2)
    if not pairs:
        return []

    sources = catalog.get_items(db, {a for a, _, _ in pairs})
    items = catalog.get_items(db, {b for _, b, _ in pairs}, published_only=True)
    candidates: List[Candidate] = []
    seen: Set[str] = set()
    for source_id, similar_id, similarity in pairs:
        if similar_id in completed or similar_id in seen:
            continue
        item = items.get(similar_id)
        source = sources.get(source_id)
        if item is None or source is None:
            continue
        seen.add(similar_id)
        candidates.append(Candidate(
            item=item,
            score=_unit(similarity),
            reason=f'Because you enjoyed "{source.title}"',
            source=RecommendationSource.AFFINITY,
            source_item_title=source.title,
        ))
        if len(candidates) >= limit:
            break
    return candidates


def trending_candidates(db: Session, user_id: str, limit: int, now: datetime) -> List[Candidate]:
    """This week's trending ranking, best rank first."""
    if limit <= 0:
        return []
    return [
        Candidate(
            item=item,
            score=_unit(raw_score / 100),
            reason=f"Trending this week with {reads_count} reads",
            source=RecommendationSource.TRENDING,
        )
        for item, raw_score, reads_count in catalog.get_trending(db, period=catalog.WEEKLY, limit=limit)
    ]


def profile_matched_candidates(db: Session, user_id: str, limit: int, now: datetime) -> List[Candidate]:
    """
    Published, unread items in the user's preferred genres.

    Uses the stored preference record, or learns the top genres from completion
    history when there is none yet.
    """
    if limit <= 0:
        return []
    prefs = preferences.get_or_learn_preferences(db, user_id)
    genres = prefs.preferred_genres[:preferences.TOP_GENRES]
    if not genres:
        return []

    logger.debug("profile_matched user=%s genres=%s learned=%s", user_id, genres, prefs.learned)
    read = event_log.get_interacted_item_ids(db, user_id)
    items = catalog.get_published_items_in_genres(
        db, genres, exclude_genres=prefs.disliked_genres, limit=limit * 2 + len(read)
    )
    candidates: List[Candidate] = []
    for item in items:
        if item.id in read:
            continue
        candidates.append(Candidate(
            item=item,
            score=PROFILE_MATCH_SCORE,
            reason=f"Matches your {item.genre} preference",
            source=RecommendationSource.PROFILE_MATCHED,
        ))
        if len(candidates) >= limit:
            break
    return candidates


def recency_candidates(db: Session, user_id: str, limit: int, now: datetime) -> List[Candidate]:
    """Items published in the trailing 7 days, newest first."""
    if limit <= 0:
        return []
    return [
        Candidate(
            item=item,
            score=RECENCY_SCORE,
            reason="Just released this week",
            source=RecommendationSource.RECENCY,
        )
        for item in catalog.get_recent_items(db, since=now - RECENCY_WINDOW, limit=limit)
    ]


MOOD_SCORE = 0.8

# Stated mood -> genres worth reading in it
MOOD_GENRES: Dict[str, List[str]] = {
    "happy": ["Comedy", "Romance", "Adventure"],
    "sad": ["Drama", "Romance", "Literary Fiction"],
    "excited": ["Thriller", "Action", "Adventure", "Sci-Fi"],
    "relaxed": ["Slice of Life", "Romance", "Cozy Mystery"],
    "scared": ["Horror", "Thriller", "Mystery"],
    "curious": ["Mystery", "Sci-Fi", "Fantasy", "Non-Fiction"],
    "romantic": ["Romance", "Drama", "Historical Fiction"],
    "adventurous": ["Adventure", "Fantasy", "Action", "Sci-Fi"],
}


def mood_genres(mood: Optional[str]) -> List[str]:
    """Genres for a stated mood, or [] when the mood is not recognized."""
    return list(MOOD_GENRES.get((mood or "").strip().lower(), []))


def mood_candidates(db: Session, user_id: str, mood: str, limit: int) -> List[Candidate]:
    """
    Published items in the mood's genres, newest first.

    Returns [] for an unrecognized mood; callers fall back to the regular
    recommendations in that case.
    """
    genres = mood_genres(mood)
    if limit <= 0 or not genres:
        return []
    mood_label = mood.strip().lower()
    return [
        Candidate(
            item=item,
            score=MOOD_SCORE,
            reason=f"Perfect for when you're feeling {mood_label}",
            source=RecommendationSource.MOOD,
        )
        for item in catalog.get_published_items_in_genres(db, genres, limit=limit)
    ]
