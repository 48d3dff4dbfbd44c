from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from personalizer.database import get_db
from personalizer.schemas.fingerprint import EmotionalFingerprint, FingerprintInsights
from personalizer.services import fingerprint_service
from personalizer.services.fingerprint_service import ProfileUpdateConflictError
from personalizer.services.insights import build_insights

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users/{user_id}/fingerprint", tags=["fingerprints"])


@router.get("", response_model=EmotionalFingerprint)
def get_fingerprint(user_id: str, db: Session = Depends(get_db)):
    """The user's fingerprint, created with defaults on first access."""
    return fingerprint_service.get_fingerprint(db, user_id)


@router.get("/insights", response_model=FingerprintInsights)
def get_fingerprint_insights(user_id: str, db: Session = Depends(get_db)):
    fingerprint = fingerprint_service.get_fingerprint(db, user_id)
    return build_insights(fingerprint)


@router.post("/reset", response_model=EmotionalFingerprint)
def reset_fingerprint(user_id: str, db: Session = Depends(get_db)):
    """
    Reset every profile channel and the archetype to defaults.
    The data_points counter is kept.
    """
    try:
        return fingerprint_service.reset_fingerprint(db, user_id)
    except ProfileUpdateConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
