"""Pytest configuration for personalizer tests."""
import os
from datetime import datetime, timedelta
from typing import List, Optional

import pytest
from sqlalchemy.orm import Session, sessionmaker

# Keep app startup from touching a real database or starting jobs
os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("ENABLE_SCHEDULER", "false")

from personalizer.database import Base, build_engine, get_db, get_session_factory

# Import the entire models module so every table is registered with Base.metadata
import personalizer.models  # noqa: F401
from personalizer.models import (
    EmotionalEvent,
    Item,
    ItemEmotionalProfile,
    ItemSimilarity,
    TrendingItem,
)

# Optional: point the suite at a disposable Postgres database instead of SQLite
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")


@pytest.fixture(scope="function")
def engine(tmp_path):
    """
    Test database engine.

    Defaults to a fresh file-backed SQLite database per test. It is file-backed
    rather than in-memory so the generator worker threads each open their own
    connection to the same data.
    """
    url = TEST_DATABASE_URL or f"sqlite:///{tmp_path / 'personalizer_test.db'}"
    test_engine = build_engine(url)

    if not Base.metadata.tables:
        raise RuntimeError(
            "No tables registered in Base.metadata. "
            "Did you import personalizer.models? All model classes must be imported before create_all()."
        )
    Base.metadata.create_all(bind=test_engine)

    yield test_engine

    if TEST_DATABASE_URL:
        Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine) -> sessionmaker:
    """Session factory matching production settings, bound to the test engine."""
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture(scope="function")
def db(session_factory) -> Session:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    """TestClient whose request sessions come from the test database."""
    from fastapi.testclient import TestClient
    from personalizer.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield TestClient(app)
    app.dependency_overrides.clear()


# ----------------------------
# Catalog / event seed helpers
# ----------------------------

@pytest.fixture
def make_item(db: Session):
    """Create a catalog item, optionally with an emotional profile."""
    def _make_item(
        item_id: str,
        title: Optional[str] = None,
        genre: Optional[str] = "fantasy",
        published_at: Optional[datetime] = None,
        days_old: Optional[int] = 30,
        is_published: bool = True,
        emotional_arc: Optional[List[dict]] = None,
        peak_moments: Optional[List[dict]] = None,
        tension_level: Optional[str] = None,
    ) -> Item:
        if published_at is None and days_old is not None:
            published_at = datetime.utcnow() - timedelta(days=days_old)
        item = Item(
            id=item_id,
            title=title or f"Story {item_id}",
            description=f"Description of {item_id}",
            author_name="Test Author",
            genre=genre,
            is_published=is_published,
            published_at=published_at,
        )
        db.add(item)
        if emotional_arc is not None or peak_moments is not None or tension_level is not None:
            db.add(ItemEmotionalProfile(
                item_id=item_id,
                emotional_arc=emotional_arc or [],
                peak_moments=peak_moments or [],
                tension_level=tension_level,
            ))
        db.commit()
        return item
    return _make_item


@pytest.fixture
def add_similarity(db: Session):
    def _add_similarity(item_id_a: str, item_id_b: str, score: float) -> None:
        db.add(ItemSimilarity(item_id_a=item_id_a, item_id_b=item_id_b, similarity_score=score))
        db.commit()
    return _add_similarity


@pytest.fixture
def add_trending(db: Session):
    def _add_trending(item_id: str, rank: int, score: float, reads_count: int = 100, period: str = "weekly") -> None:
        db.add(TrendingItem(item_id=item_id, rank=rank, score=score, reads_count=reads_count, period=period))
        db.commit()
    return _add_trending


@pytest.fixture
def add_event(db: Session):
    """Append a raw event row directly (bypasses the fingerprint update)."""
    def _add_event(
        user_id: str,
        item_id: str,
        event_type: str = "complete",
        emotional_context: Optional[str] = None,
        minutes_ago: int = 0,
    ) -> None:
        db.add(EmotionalEvent(
            user_id=user_id,
            item_id=item_id,
            event_type=event_type,
            emotional_context=emotional_context,
            occurred_at=datetime.utcnow() - timedelta(minutes=minutes_ago),
        ))
        db.commit()
    return _add_event
