from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from personalizer.database import get_db
from personalizer.schemas.preferences import ReadingPreferences, ReadingPreferencesUpdate
from personalizer.services import preferences as preferences_service

router = APIRouter(prefix="/users/{user_id}/preferences", tags=["preferences"])


@router.get("", response_model=ReadingPreferences)
def get_preferences(user_id: str, db: Session = Depends(get_db)):
    """Stored preferences, or empty defaults when none exist yet."""
    return preferences_service.get_preferences(db, user_id) or ReadingPreferences()


@router.put("", response_model=ReadingPreferences)
def update_preferences(
    user_id: str,
    payload: ReadingPreferencesUpdate,
    db: Session = Depends(get_db),
):
    """Set explicit preferences. Omitted fields keep their current value."""
    return preferences_service.upsert_preferences(db, user_id, payload)
