"""
Behavioral event ingestion, event history and recommendation feedback events.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, sessionmaker
from pydantic import BaseModel
from typing import List, Optional
import logging

from personalizer.database import get_db, get_session_factory
from personalizer.schemas.fingerprint import EmotionalEventIn, EventHistoryItem, RecordEventResponse
from personalizer.services import fingerprint_service
from personalizer.services.event_ingestor import EventValidationError, normalize_event
from personalizer.services.fingerprint_service import ProfileUpdateConflictError
from personalizer.utils.instrumentation import log_event_best_effort

logger = logging.getLogger(__name__)
router = APIRouter(tags=["events"])


class RecommendationFeedbackRequest(BaseModel):
    """Request body for recommendation click / dismiss events."""
    item_id: str
    request_id: Optional[str] = None
    position: Optional[int] = None
    source: Optional[str] = None
    user_id: Optional[str] = None
    session_id: Optional[str] = None


@router.post(
    "/users/{user_id}/events",
    response_model=RecordEventResponse,
    status_code=status.HTTP_201_CREATED,
)
def record_event(
    user_id: str,
    payload: EmotionalEventIn,
    db: Session = Depends(get_db),
):
    """Record one behavioral reading event and fold it into the user's fingerprint."""
    try:
        event = normalize_event(payload)
    except EventValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        fingerprint = fingerprint_service.apply_event(db, user_id, event)
    except ProfileUpdateConflictError as e:
        logger.warning("Event for user %s dropped after version conflicts: %s", user_id, e)
        raise HTTPException(status_code=409, detail=str(e))

    return RecordEventResponse(
        event_type=event.event_type,
        item_id=event.item_id,
        data_points=fingerprint.data_points,
        confidence_score=fingerprint.confidence_score,
        emotional_journey_preference=fingerprint.emotional_journey_preference,
    )


@router.get("/users/{user_id}/events", response_model=List[EventHistoryItem])
def get_event_history(
    user_id: str,
    event_type: Optional[str] = Query(None, description="Only events of this type"),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """A user's behavioral events, newest first."""
    try:
        events = fingerprint_service.get_event_history(db, user_id, event_type=event_type, limit=limit)
    except EventValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return [EventHistoryItem.model_validate(e) for e in events]


def _log_feedback(event_name: str, payload: RecommendationFeedbackRequest, session_factory: sessionmaker) -> None:
    # Best-effort logging - never raises exceptions
    log_event_best_effort(
        event_name=event_name,
        user_id=payload.user_id,
        properties={
            "item_id": payload.item_id,
            "request_id": payload.request_id,
            "position": payload.position,
            "source": payload.source,
        },
        request_id=payload.request_id,
        session_id=payload.session_id,
        session_factory=session_factory,
    )


@router.post("/events/recommendation-click", status_code=status.HTTP_204_NO_CONTENT)
def log_recommendation_click(
    payload: RecommendationFeedbackRequest,
    session_factory: sessionmaker = Depends(get_session_factory),
):
    """
    Log a click on a recommended item.

    Validation is minimal and logging is best-effort, so this never fails the
    client for analytics reasons.
    """
    _log_feedback("recommendation_clicked", payload, session_factory)
    return None


@router.post("/events/recommendation-dismiss", status_code=status.HTTP_204_NO_CONTENT)
def log_recommendation_dismiss(
    payload: RecommendationFeedbackRequest,
    session_factory: sessionmaker = Depends(get_session_factory),
):
    """Log a dismissed recommendation (best-effort)."""
    _log_feedback("recommendation_dismissed", payload, session_factory)
    return None
