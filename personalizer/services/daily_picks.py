"""
Daily pick cache: one stable slate of three items per user per UTC day.

The first call of the day runs the aggregator and stores the top three item
ids under (user_id, pick_date); every later call that day re-reads those ids
and only refreshes their catalog metadata. Concurrent first calls are settled
by the unique constraint: the loser rolls back and reads the winner's slate.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from personalizer.models import DailyPick, RecommendationSource
from personalizer.schemas.recommendation import DailyPicks, Recommendation
from personalizer.services import aggregator, catalog
from personalizer.utils.instrumentation import log_event

logger = logging.getLogger(__name__)

DAILY_PICK_COUNT = 3
DAILY_CANDIDATE_POOL = 10
DAILY_PICK_SCORE = 1.0
DAILY_PICK_REASON = "Your daily pick"


def utc_today() -> date:
    return datetime.utcnow().date()


def get_slate(db: Session, user_id: str, pick_date: date) -> Optional[List[str]]:
    record = (
        db.query(DailyPick)
        .filter(DailyPick.user_id == user_id, DailyPick.pick_date == pick_date)
        .first()
    )
    if record is None:
        return None
    return list(record.item_ids or [])


def insert_slate_if_absent(db: Session, user_id: str, pick_date: date, item_ids: List[str]) -> List[str]:
    """
    Store a slate unless one already exists for (user_id, pick_date).

    Returns the slate that ends up stored, which is the other writer's if we
    lost the race.
    """
    db.add(DailyPick(user_id=user_id, pick_date=pick_date, item_ids=list(item_ids)))
    try:
        db.flush()
        log_event(
            db,
            "daily_picks_generated",
            user_id=user_id,
            properties={"pick_date": pick_date.isoformat(), "item_ids": list(item_ids)},
        )
        db.commit()
        logger.info("Stored daily picks user=%s date=%s items=%s", user_id, pick_date, item_ids)
        return list(item_ids)
    except IntegrityError:
        # Race condition: a concurrent first call stored its slate first
        db.rollback()
        existing = get_slate(db, user_id, pick_date)
        if existing is None:
            raise
        logger.debug("Daily picks already stored for user=%s date=%s, using existing slate", user_id, pick_date)
        return existing


def _build_picks(db: Session, item_ids: List[str]) -> List[Recommendation]:
    """Current catalog metadata for the slate, in stored order. Missing items are skipped."""
    items = catalog.get_items(db, item_ids)
    picks = []
    for item_id in item_ids:
        item = items.get(item_id)
        if item is None:
            logger.debug("Daily pick item=%s no longer in catalog", item_id)
            continue
        picks.append(Recommendation(
            item_id=item.id,
            title=item.title,
            description=item.description,
            author_name=item.author_name,
            genre=item.genre,
            cover_image_url=item.cover_image_url,
            score=DAILY_PICK_SCORE,
            reason=DAILY_PICK_REASON,
            source=RecommendationSource.DAILY_PICK,
        ))
    return picks


def get_daily_picks(
    session_factory: Callable[[], Session],
    user_id: str,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
) -> DailyPicks:
    """
    The slate for `today` (UTC). Candidates for a new slate are generated as of
    `now`, which defaults to the current time of day on `today`.
    """
    if now is None:
        now = datetime.combine(today, datetime.utcnow().time()) if today else datetime.utcnow()
    pick_date = today or now.date()
    db = session_factory()
    try:
        item_ids = get_slate(db, user_id, pick_date)
        if item_ids is None:
            candidates = aggregator.aggregate(session_factory, user_id, DAILY_CANDIDATE_POOL, now=now)
            chosen = [c.item.id for c in candidates[:DAILY_PICK_COUNT]]
            if not chosen:
                # Nothing to show yet; leave the day open so a later call can fill it
                logger.info("No candidates for daily picks user=%s date=%s", user_id, pick_date)
                return DailyPicks(date=pick_date, items=[])
            item_ids = insert_slate_if_absent(db, user_id, pick_date, chosen)
        return DailyPicks(date=pick_date, items=_build_picks(db, item_ids))
    finally:
        db.close()


def purge_expired_slates(db: Session, retention_days: int, today: Optional[date] = None) -> int:
    """Delete slates older than `retention_days` days. Returns the number removed."""
    cutoff = (today or utc_today()) - timedelta(days=retention_days)
    deleted = (
        db.query(DailyPick)
        .filter(DailyPick.pick_date < cutoff)
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info("Purged %s daily pick slates older than %s", deleted, cutoff)
    return deleted
