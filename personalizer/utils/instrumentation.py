"""
Analytics event logging.

Writes rows to `event_logs` (impressions, daily-pick generation, feedback
clicks/dismissals, fingerprint resets) and mirrors them to the structured log.
Neither helper ever raises into the request path.
"""
import logging
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import Session

from personalizer.database import SessionLocal
from personalizer.models import EventLog

logger = logging.getLogger(__name__)


def _structured(event_name: str, user_id, request_id, session_id, properties) -> Dict[str, Any]:
    return {
        "event_name": event_name,
        "user_id": str(user_id) if user_id else None,
        "request_id": request_id,
        "session_id": session_id,
        "properties": properties,
    }


def log_event(
    db: Session,
    event_name: str,
    user_id: Optional[str] = None,
    properties: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None,
    session_id: Optional[str] = None,
) -> None:
    """
    Record an analytics event inside the caller's transaction.

    Note: flushes but does NOT commit. The caller commits (or rolls back, in
    which case the event goes with it).
    """
    try:
        db.add(EventLog(
            event_name=event_name,
            user_id=user_id,
            properties=properties,
            request_id=request_id,
            session_id=session_id,
        ))
        db.flush()
        logger.info("event_logged", extra=_structured(event_name, user_id, request_id, session_id, properties))
    except Exception as e:
        logger.warning(
            "Failed to log event: event_name=%s, user_id=%s, error=%s",
            event_name,
            user_id,
            str(e),
            exc_info=True,
        )


def log_event_best_effort(
    event_name: str,
    user_id: Optional[str] = None,
    properties: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None,
    session_id: Optional[str] = None,
    session_factory: Optional[Callable[[], Session]] = None,
) -> None:
    """
    Record an analytics event in its own session and commit it independently,
    so a logging failure can never undo the business write it describes.

    Failures are logged as warnings, never raised.
    """
    factory = session_factory or SessionLocal
    db = None
    try:
        db = factory()
        db.add(EventLog(
            event_name=event_name,
            user_id=user_id,
            properties=properties,
            request_id=request_id,
            session_id=session_id,
        ))
        db.commit()
        logger.info("event_logged", extra=_structured(event_name, user_id, request_id, session_id, properties))
    except (OperationalError, ProgrammingError) as e:
        error_str = str(e).lower()
        if "does not exist" in error_str or "no such table" in error_str:
            logger.warning(
                "event_logs table missing, run alembic upgrade head. "
                "Event logging disabled until migration is applied."
            )
        else:
            logger.warning(
                "Failed to log event (database error): event_name=%s, user_id=%s, error=%s",
                event_name,
                user_id,
                str(e),
                exc_info=True,
            )
        if db:
            db.rollback()
    except Exception as e:
        logger.warning(
            "Failed to log event: event_name=%s, user_id=%s, error=%s",
            event_name,
            user_id,
            str(e),
            exc_info=True,
        )
        if db:
            db.rollback()
    finally:
        if db:
            db.close()
