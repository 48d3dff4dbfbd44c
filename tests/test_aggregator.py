"""Tests for candidate fan-out, merging and the cold-start fallback."""
import time
from datetime import datetime

from personalizer.models import EventLog, RecommendationSource
from personalizer.schemas.content import ItemSummary
from personalizer.services.aggregator import (
    aggregate,
    get_mood_recommendations,
    get_recommendations,
    merge_candidates,
)
from personalizer.services.candidates import Candidate


def candidate(item_id: str, score: float, source: RecommendationSource) -> Candidate:
    return Candidate(item=ItemSummary(id=item_id, title=item_id), score=score, reason="r", source=source)


def static_generator(*candidates):
    def _generator(db, user_id, limit, now):
        return list(candidates)[:limit]
    return _generator


def failing_generator(db, user_id, limit, now):
    raise RuntimeError("catalog unavailable")


def empty_generator(db, user_id, limit, now):
    return []


def test_merge_dedupes_first_occurrence_wins():
    """An item offered by two generators keeps the higher-priority generator's entry."""
    affinity = [candidate("a", 0.5, RecommendationSource.AFFINITY)]
    trending = [candidate("a", 0.9, RecommendationSource.TRENDING), candidate("b", 0.8, RecommendationSource.TRENDING)]
    merged = merge_candidates([affinity, trending], limit=10)
    assert [(c.item.id, c.source) for c in merged] == [
        ("b", RecommendationSource.TRENDING),
        ("a", RecommendationSource.AFFINITY),
    ]


def test_merge_sorts_by_score_and_truncates():
    """Merged output is sorted by score descending and cut to the limit; ties keep priority order."""
    lists = [
        [candidate("x", 0.6, RecommendationSource.AFFINITY)],
        [candidate("y", 0.9, RecommendationSource.TRENDING)],
        [candidate("z", 0.6, RecommendationSource.RECENCY), candidate("w", 0.1, RecommendationSource.RECENCY)],
    ]
    merged = merge_candidates(lists, limit=3)
    assert [c.item.id for c in merged] == ["y", "x", "z"]


def test_aggregate_splits_limit_across_generators(session_factory):
    """Each generator is asked for ceil(limit / 4) candidates."""
    seen_limits = []

    def recording_generator(db, user_id, limit, now):
        seen_limits.append(limit)
        return []

    generators = [(f"g{i}", recording_generator) for i in range(4)]
    aggregate(session_factory, "u1", 10, generators=generators, fallback=empty_generator)
    assert seen_limits == [3, 3, 3, 3]


def test_failing_generator_degrades_to_empty(session_factory):
    """One generator raising does not affect the others' results."""
    generators = [
        ("affinity", failing_generator),
        ("trending", static_generator(candidate("t1", 0.8, RecommendationSource.TRENDING))),
        ("profile_matched", empty_generator),
        ("recency", static_generator(candidate("r1", 0.6, RecommendationSource.RECENCY))),
    ]
    results = aggregate(session_factory, "u1", 8, generators=generators)
    assert [c.item.id for c in results] == ["t1", "r1"]


def test_slow_generator_times_out(session_factory):
    """A generator that misses the deadline contributes nothing."""
    def slow_generator(db, user_id, limit, now):
        time.sleep(1.0)
        return [candidate("slow", 0.99, RecommendationSource.AFFINITY)]

    generators = [
        ("affinity", slow_generator),
        ("trending", static_generator(candidate("t1", 0.8, RecommendationSource.TRENDING))),
    ]
    results = aggregate(session_factory, "u1", 4, generators=generators, timeout=0.2)
    assert [c.item.id for c in results] == ["t1"]


def test_cold_start_falls_back_to_recency(session_factory, make_item):
    """When every generator is empty, recency fills the whole requested limit."""
    for i in range(6):
        make_item(f"new-{i}", days_old=i)
    generators = [(name, empty_generator) for name in ("affinity", "trending", "profile_matched", "recency")]

    results = aggregate(session_factory, "brand-new-user", 5, generators=generators)

    assert len(results) == 5
    assert all(c.source == RecommendationSource.RECENCY for c in results)


def test_cold_start_with_real_generators(session_factory, make_item):
    """A brand-new user gets recency output from the real generators: one slot of ceil(4 / 4)."""
    make_item("fresh-1", days_old=1)
    make_item("fresh-2", days_old=2)
    results = aggregate(session_factory, "brand-new-user", 4)
    assert [c.item.id for c in results] == ["fresh-1"]
    assert results[0].source == RecommendationSource.RECENCY


def test_non_positive_limit_returns_nothing(session_factory):
    """limit <= 0 short-circuits to an empty list."""
    assert aggregate(session_factory, "u1", 0) == []


def test_get_recommendations_priority_and_compatibility(
    session_factory, make_item, add_similarity, add_trending, add_event
):
    """Affinity beats trending on a shared item, and profiled items carry a compatibility score."""
    make_item("read-1", title="Origin")
    make_item("shared", tension_level="medium", days_old=2)
    make_item("trend-only")
    add_event("u1", "read-1", "complete")
    add_similarity("read-1", "shared", 0.5)
    add_trending("shared", rank=1, score=90.0)
    add_trending("trend-only", rank=2, score=80.0)

    results = get_recommendations(session_factory, "u1", 8, now=datetime.utcnow())
    by_id = {r.item_id: r for r in results}

    assert by_id["shared"].source == RecommendationSource.AFFINITY
    assert by_id["shared"].source_item_title == "Origin"
    assert by_id["shared"].compatibility == 65
    assert by_id["trend-only"].compatibility is None
    assert [r.item_id for r in results][0] == "trend-only"
    assert len(results) == len(by_id)



def test_mood_recommendations_are_recorded(session_factory, db, make_item):
    """A known mood serves genre matches and records the request."""
    make_item("laughs", genre="Comedy", days_old=3)
    make_item("quest", genre="Adventure", days_old=1)
    make_item("gloom", genre="Drama", days_old=0)

    results = get_mood_recommendations(session_factory, "u1", "happy", 5, request_id="req-1")

    assert [r.item_id for r in results] == ["quest", "laughs"]
    assert all(r.source == RecommendationSource.MOOD for r in results)

    logged = db.query(EventLog).filter(EventLog.event_name == "mood_recommendations_requested").one()
    assert logged.request_id == "req-1"
    assert logged.properties["mood"] == "happy"
    assert logged.properties["item_ids"] == ["quest", "laughs"]


def test_unknown_mood_falls_back_to_regular_recommendations(session_factory, db, make_item):
    """An unrecognized mood gets the regular engine output instead of nothing."""
    make_item("fresh", genre="Drama", days_old=1)

    results = get_mood_recommendations(session_factory, "u1", "grumpy", 5)

    assert [r.item_id for r in results] == ["fresh"]
    assert results[0].source == RecommendationSource.RECENCY
    logged = db.query(EventLog).filter(EventLog.event_name == "mood_recommendations_requested").one()
    assert logged.properties["genres"] == []
