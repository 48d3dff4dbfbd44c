"""
Recommendation aggregator: the composition root of the engine.

Fans the four candidate generators out on a shared thread pool, each with its
own database session, then merges their lists:

    concat in priority order -> dedupe by item (first wins) -> sort by score
    -> truncate

A generator that raises or misses the deadline contributes [] and is logged.
If every generator comes back empty the result degrades to recency-only
output instead of an empty list.
"""
import logging
import math
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from personalizer.core.config import settings
from personalizer.schemas.recommendation import Recommendation
from personalizer.services import catalog, compatibility, fingerprint_store
from personalizer.services.candidates import (
    Candidate,
    Generator,
    affinity_candidates,
    mood_candidates,
    mood_genres,
    profile_matched_candidates,
    recency_candidates,
    trending_candidates,
)
from personalizer.utils.instrumentation import log_event_best_effort
from personalizer.utils.timing import time_operation

logger = logging.getLogger(__name__)

GENERATOR_COUNT = 4

# Order is the dedupe priority: affinity > trending > profile_matched > recency
GENERATORS: Tuple[Tuple[str, Generator], ...] = (
    ("affinity", affinity_candidates),
    ("trending", trending_candidates),
    ("profile_matched", profile_matched_candidates),
    ("recency", recency_candidates),
)

EXECUTOR = ThreadPoolExecutor(
    max_workers=settings.GENERATOR_MAX_WORKERS,
    thread_name_prefix="candidate-generator",
)

SessionFactory = Callable[[], Session]


def _run_generator(
    session_factory: SessionFactory,
    name: str,
    generator: Generator,
    user_id: str,
    limit: int,
    now: datetime,
) -> List[Candidate]:
    """Run one generator in its own session. Never raises."""
    db = session_factory()
    try:
        with time_operation(f"generator={name} user={user_id}"):
            return list(generator(db, user_id, limit, now))
    except Exception:
        logger.warning("Candidate generator %s failed for user=%s, treating as empty", name, user_id, exc_info=True)
        return []
    finally:
        db.close()


def merge_candidates(candidate_lists: Sequence[List[Candidate]], limit: int) -> List[Candidate]:
    """
    Concatenate in the given order, keep the first occurrence of each item,
    then sort by score descending. The sort is stable, so equal scores keep
    generator priority.
    """
    seen: Set[str] = set()
    merged: List[Candidate] = []
    for candidates in candidate_lists:
        for candidate in candidates:
            if candidate.item.id in seen:
                continue
            seen.add(candidate.item.id)
            merged.append(candidate)
    merged.sort(key=lambda c: c.score, reverse=True)
    return merged[:max(0, limit)]


def aggregate(
    session_factory: SessionFactory,
    user_id: str,
    limit: int,
    generators: Optional[Sequence[Tuple[str, Generator]]] = None,
    fallback: Generator = recency_candidates,
    now: Optional[datetime] = None,
    timeout: Optional[float] = None,
) -> List[Candidate]:
    if limit <= 0:
        return []
    generators = GENERATORS if generators is None else generators
    now = now or datetime.utcnow()
    timeout = settings.GENERATOR_TIMEOUT_SECONDS if timeout is None else timeout
    per_generator = math.ceil(limit / GENERATOR_COUNT)

    futures = [
        EXECUTOR.submit(_run_generator, session_factory, name, generator, user_id, per_generator, now)
        for name, generator in generators
    ]
    done, _ = wait(futures, timeout=timeout)

    results: List[List[Candidate]] = []
    for (name, _), future in zip(generators, futures):
        if future in done:
            results.append(future.result())
        else:
            future.cancel()
            logger.warning("Candidate generator %s timed out after %.1fs for user=%s", name, timeout, user_id)
            results.append([])

    counts: Dict[str, int] = {name: len(result) for (name, _), result in zip(generators, results)}
    logger.debug("Generator results user=%s counts=%s", user_id, counts)

    if not any(results):
        # Cold start: recency-only with the full limit
        logger.info("All generators empty for user=%s, falling back to recency", user_id)
        return merge_candidates([_run_generator(session_factory, "fallback", fallback, user_id, limit, now)], limit)

    return merge_candidates(results, limit)


def to_recommendation(candidate: Candidate, compatibility_score: Optional[int] = None) -> Recommendation:
    item = candidate.item
    return Recommendation(
        item_id=item.id,
        title=item.title,
        description=item.description,
        author_name=item.author_name,
        genre=item.genre,
        cover_image_url=item.cover_image_url,
        score=round(candidate.score, 4),
        reason=candidate.reason,
        source=candidate.source,
        source_item_title=candidate.source_item_title,
        compatibility=compatibility_score,
    )


def attach_compatibility(db: Session, user_id: str, candidates: List[Candidate]) -> List[Recommendation]:
    """
    Convert candidates to Recommendations with a compatibility score for every
    item that has an emotional profile. Ranking is left untouched.
    """
    if not candidates:
        return []
    try:
        fingerprint = fingerprint_store.get_or_create_fingerprint(db, user_id)
        profiles = catalog.get_emotional_profiles(db, [c.item.id for c in candidates])
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Compatibility enrichment unavailable for user=%s", user_id, exc_info=True)
        return [to_recommendation(c) for c in candidates]

    recommendations = []
    for candidate in candidates:
        content = profiles.get(candidate.item.id)
        compat = compatibility.score(fingerprint, content).score if content is not None else None
        recommendations.append(to_recommendation(candidate, compat))
    return recommendations


def get_recommendations(
    session_factory: SessionFactory,
    user_id: str,
    limit: int,
    now: Optional[datetime] = None,
) -> List[Recommendation]:
    with time_operation(f"get_recommendations user={user_id} limit={limit}", log_fn=logger.info, min_ms=500):
        candidates = aggregate(session_factory, user_id, limit, now=now)
        db = session_factory()
        try:
            return attach_compatibility(db, user_id, candidates)
        finally:
            db.close()


def get_mood_recommendations(
    session_factory: SessionFactory,
    user_id: str,
    mood: str,
    limit: int,
    request_id: Optional[str] = None,
) -> List[Recommendation]:
    """
    Items for a stated mood. An unrecognized mood gets the regular
    recommendations instead. The request is recorded best-effort.
    """
    genres = mood_genres(mood)
    if not genres:
        logger.info("Unknown mood=%r for user=%s, using regular recommendations", mood, user_id)
        recommendations = get_recommendations(session_factory, user_id, limit)
    else:
        db = session_factory()
        try:
            candidates = mood_candidates(db, user_id, mood, limit)
            recommendations = attach_compatibility(db, user_id, candidates)
        finally:
            db.close()

    log_event_best_effort(
        event_name="mood_recommendations_requested",
        user_id=user_id,
        properties={
            "mood": mood,
            "genres": genres,
            "item_ids": [r.item_id for r in recommendations],
        },
        request_id=request_id,
        session_factory=session_factory,
    )
    return recommendations
