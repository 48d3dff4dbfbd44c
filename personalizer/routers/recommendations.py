from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, sessionmaker
import logging
import uuid as uuid_lib

from personalizer.database import get_db, get_session_factory
from personalizer.schemas.recommendation import CompatibilityResponse, DailyPicks, RecommendationsResponse
from personalizer.services import aggregator, compatibility, daily_picks
from personalizer.utils.instrumentation import log_event
from personalizer.utils.timing import time_operation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users/{user_id}", tags=["recommendations"])

MAX_RECOMMENDATIONS = 50


@router.get("/recommendations", response_model=RecommendationsResponse)
def get_recommendations(
    user_id: str,
    limit: int = Query(10, ge=1, le=MAX_RECOMMENDATIONS),
    db: Session = Depends(get_db),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    request_id = str(uuid_lib.uuid4())
    logger.info("Fetching recommendations for user %s limit=%s", user_id, limit)

    with time_operation(f"req_id={request_id} user={user_id} aggregate") as timer:
        items = aggregator.get_recommendations(session_factory, user_id, limit)

    # Log impression event
    item_ids = [item.item_id for item in items]
    log_event(
        db=db,
        event_name="recommendations_impression",
        user_id=user_id,
        properties={
            "request_id": request_id,
            "count": len(items),
            "top_item_id": item_ids[0] if item_ids else None,
            "item_ids": item_ids,
            "sources": [item.source.value for item in items],
            "elapsed_ms": timer.elapsed_ms,
        },
        request_id=request_id,
    )
    db.commit()

    return RecommendationsResponse(request_id=request_id, items=items)


@router.get("/recommendations/mood", response_model=RecommendationsResponse)
def get_mood_recommendations(
    user_id: str,
    mood: str = Query(..., min_length=1, description="How the reader feels, e.g. happy, scared"),
    limit: int = Query(5, ge=1, le=MAX_RECOMMENDATIONS),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    """
    Published items in genres that suit the stated mood, newest first.
    An unrecognized mood returns the regular recommendations.
    """
    request_id = str(uuid_lib.uuid4())
    logger.info("Fetching mood recommendations for user %s mood=%s limit=%s", user_id, mood, limit)
    items = aggregator.get_mood_recommendations(session_factory, user_id, mood, limit, request_id=request_id)
    return RecommendationsResponse(request_id=request_id, items=items)


@router.get("/daily-picks", response_model=DailyPicks)
def get_daily_picks(
    user_id: str,
    session_factory: sessionmaker = Depends(get_session_factory),
):
    """Today's three picks (UTC day). Stable for the whole day once chosen."""
    return daily_picks.get_daily_picks(session_factory, user_id)


@router.get("/compatibility/{item_id}", response_model=CompatibilityResponse)
def get_compatibility(user_id: str, item_id: str, db: Session = Depends(get_db)):
    """
    0-100 fit between the user's fingerprint and one item.
    Unknown items score a neutral 50 with item_found=false.
    """
    return compatibility.score_compatibility(db, user_id, item_id)
