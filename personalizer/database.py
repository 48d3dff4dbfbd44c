from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from personalizer.core.config import settings
import logging
import time

logger = logging.getLogger(__name__)

logger.info("PERSONALIZER DATABASE_URL = %s", settings.get_masked_database_url())


def build_engine(database_url: str, debug: bool = False):
    """
    Create an engine with pre-ping enabled.

    SQLite connections are shared across the generator worker threads, so
    check_same_thread is disabled for them.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    new_engine = create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before using them
        echo=False,  # Keep echo off - we'll log slow queries separately
        connect_args=connect_args,
    )

    # Add slow query logging (DEBUG mode only)
    if debug:
        slow_query_threshold_ms = 200.0

        @event.listens_for(new_engine, "before_cursor_execute")
        def receive_before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            """Store query start time before execution."""
            context._query_start_time = time.perf_counter()

        @event.listens_for(new_engine, "after_cursor_execute")
        def receive_after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            """Log slow queries after execution."""
            if hasattr(context, "_query_start_time"):
                elapsed_ms = (time.perf_counter() - context._query_start_time) * 1000
                if elapsed_ms >= slow_query_threshold_ms:
                    statement_first_line = statement.split("\n")[0].strip()[:100]
                    logger.warning(
                        f"SLOW_QUERY: {elapsed_ms:.2f}ms - {statement_first_line}"
                    )

    return new_engine


engine = build_engine(settings.DATABASE_URL, debug=settings.DEBUG)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> sessionmaker:
    """
    Dependency for code that opens its own sessions (the generator fan-out
    and the daily pick cache each need one session per worker thread).
    """
    return SessionLocal


def init_db() -> None:
    """
    Dev convenience: ensure all tables exist.
    In production, prefer running Alembic migrations instead
    (set AUTO_CREATE_TABLES=false and run `alembic upgrade head`).

    WARNING: create_all() will NOT add missing columns to existing tables.
    It only creates tables that don't exist.
    """
    if not settings.AUTO_CREATE_TABLES:
        logger.info("AUTO_CREATE_TABLES disabled; expecting schema from 'alembic upgrade head'")
        return

    # Import all models to ensure they're registered with Base.metadata
    from personalizer import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
