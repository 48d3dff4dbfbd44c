"""
Background scheduler for maintenance jobs.

Uses APScheduler to purge expired daily-pick slates once a day.
"""
import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session
from personalizer.core.config import settings
from personalizer.database import SessionLocal
from personalizer.services.daily_picks import purge_expired_slates

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = None


def purge_daily_picks_job(session_factory=SessionLocal):
    """
    Scheduled job to drop daily-pick slates past their retention.
    Runs every day at 00:15 UTC, shortly after the pick date rolls over.
    """
    logger.info("Running daily picks purge job")

    db: Session = session_factory()
    try:
        deleted = purge_expired_slates(db, retention_days=settings.DAILY_PICKS_RETENTION_DAYS)
        logger.info(f"Daily picks purge job completed: deleted={deleted}")
    except Exception as e:
        db.rollback()
        logger.exception(f"Daily picks purge job failed: {e}")
    finally:
        db.close()


def start_scheduler():
    """
    Start the background scheduler with all configured jobs.
    Called from the FastAPI startup event when ENABLE_SCHEDULER is set.
    """
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler already running")
        return

    logger.info("Starting background scheduler")
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        purge_daily_picks_job,
        trigger=CronTrigger(hour=0, minute=15, timezone="UTC"),
        id="purge_daily_picks",
        name="Purge expired daily pick slates",
        replace_existing=True,
    )

    scheduler.start()
    logger.info("Background scheduler started with daily picks purge job")


def stop_scheduler():
    """
    Stop the background scheduler.
    Called from the FastAPI shutdown event.
    """
    global scheduler

    if scheduler is not None:
        logger.info("Stopping background scheduler")
        scheduler.shutdown(wait=False)
        scheduler = None
