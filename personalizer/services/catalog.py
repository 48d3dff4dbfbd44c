"""
Content Catalog adapter (read-only).

Everything returned here is converted to pydantic models before the session
closes, so results are safe to hand across the generator worker threads.
"""
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

import sqlalchemy as sa
from pydantic import ValidationError
from sqlalchemy.orm import Session

from personalizer.models import Item, ItemEmotionalProfile, ItemSimilarity, TensionLevel, TrendingItem
from personalizer.schemas.content import ArcPoint, ContentEmotionalProfile, ItemSummary, PeakMoment

logger = logging.getLogger(__name__)

WEEKLY = "weekly"


def to_item_summary(item: Item) -> ItemSummary:
    return ItemSummary.model_validate(item)


def get_item(db: Session, item_id: str) -> Optional[ItemSummary]:
    item = db.get(Item, item_id)
    return to_item_summary(item) if item else None


def get_items(db: Session, item_ids: Iterable[str], published_only: bool = False) -> Dict[str, ItemSummary]:
    ids = list(item_ids)
    if not ids:
        return {}
    q = db.query(Item).filter(Item.id.in_(ids))
    if published_only:
        q = q.filter(Item.is_published.is_(True))
    items = q.all()
    return {item.id: to_item_summary(item) for item in items}


def _parse_list(raw, model, item_id: str) -> list:
    """Parse a JSON list leniently; malformed entries are dropped, not fatal."""
    if not isinstance(raw, list):
        return []
    parsed = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        try:
            parsed.append(model.model_validate(entry))
        except ValidationError:
            logger.debug("Dropping malformed %s entry for item=%s: %r", model.__name__, item_id, entry)
    return parsed


def _parse_tension(raw: Optional[str]) -> Optional[TensionLevel]:
    if not raw:
        return None
    try:
        return TensionLevel(raw.strip().lower())
    except ValueError:
        return None


def _to_content_profile(record: ItemEmotionalProfile) -> ContentEmotionalProfile:
    return ContentEmotionalProfile(
        item_id=record.item_id,
        emotional_arc=_parse_list(record.emotional_arc, ArcPoint, record.item_id),
        peak_moments=_parse_list(record.peak_moments, PeakMoment, record.item_id),
        overall_tone=record.overall_tone,
        tension_level=_parse_tension(record.tension_level),
    )


def get_emotional_profile(db: Session, item_id: str) -> Optional[ContentEmotionalProfile]:
    record = db.get(ItemEmotionalProfile, item_id)
    return _to_content_profile(record) if record else None


def get_emotional_profiles(db: Session, item_ids: Iterable[str]) -> Dict[str, ContentEmotionalProfile]:
    ids = list(item_ids)
    if not ids:
        return {}
    records = db.query(ItemEmotionalProfile).filter(ItemEmotionalProfile.item_id.in_(ids)).all()
    return {record.item_id: _to_content_profile(record) for record in records}


def get_trending(db: Session, period: str = WEEKLY, limit: int = 5) -> List[Tuple[ItemSummary, float, int]]:
    """(item, raw score, reads count) for the period's ranking, best rank first."""
    rows = (
        db.query(TrendingItem, Item)
        .join(Item, Item.id == TrendingItem.item_id)
        .filter(TrendingItem.period == period, Item.is_published.is_(True))
        .order_by(TrendingItem.rank.asc())
        .limit(limit)
        .all()
    )
    return [(to_item_summary(item), trending.score or 0.0, trending.reads_count or 0) for trending, item in rows]


def get_similar_items(db: Session, item_ids: Iterable[str], limit: int) -> List[Tuple[str, str, float]]:
    """(source item id, similar item id, similarity) pairs, most similar first."""
    ids = list(item_ids)
    if not ids:
        return []
    rows = (
        db.query(ItemSimilarity.item_id_a, ItemSimilarity.item_id_b, ItemSimilarity.similarity_score)
        .filter(ItemSimilarity.item_id_a.in_(ids))
        .order_by(ItemSimilarity.similarity_score.desc())
        .limit(limit)
        .all()
    )
    return [(a, b, score) for a, b, score in rows]


def _newest_first():
    return sa.func.coalesce(Item.published_at, Item.created_at).desc()


def get_published_items_in_genres(
    db: Session,
    genres: List[str],
    exclude_genres: Optional[List[str]] = None,
    limit: int = 10,
) -> List[ItemSummary]:
    """Genre names match case-insensitively."""
    if not genres:
        return []
    genre = sa.func.lower(Item.genre)
    q = db.query(Item).filter(Item.is_published.is_(True), genre.in_([g.lower() for g in genres]))
    if exclude_genres:
        q = q.filter(genre.notin_([g.lower() for g in exclude_genres]))
    items = q.order_by(_newest_first()).limit(limit).all()
    return [to_item_summary(item) for item in items]


def get_recent_items(db: Session, since: datetime, limit: int) -> List[ItemSummary]:
    items = (
        db.query(Item)
        .filter(Item.is_published.is_(True), Item.published_at >= since)
        .order_by(Item.published_at.desc())
        .limit(limit)
        .all()
    )
    return [to_item_summary(item) for item in items]


def get_genres(db: Session, item_ids: Iterable[str]) -> List[Optional[str]]:
    ids = list(item_ids)
    if not ids:
        return []
    return [row[0] for row in db.query(Item.genre).filter(Item.id.in_(ids)).all()]
