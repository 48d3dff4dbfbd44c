"""Tests for explicit and learned reading preferences."""
from personalizer.schemas.preferences import ReadingPreferencesUpdate
from personalizer.services.preferences import get_or_learn_preferences, get_preferences, upsert_preferences


def test_no_history_learns_nothing(db):
    """With no completions nothing is learned or stored."""
    prefs = get_or_learn_preferences(db, "u1")
    assert prefs.preferred_genres == []
    assert get_preferences(db, "u1") is None


def test_learned_genres_ranked_by_count(db, make_item, add_event):
    """Top genres come from completed items, most frequent first, at most five."""
    genres = ["horror", "horror", "horror", "mystery", "mystery", "poetry", "fantasy", "scifi", "drama"]
    for i, genre in enumerate(genres):
        make_item(f"done-{i}", genre=genre)
        add_event("u1", f"done-{i}", "complete")

    prefs = get_or_learn_preferences(db, "u1")
    assert prefs.learned is True
    assert prefs.preferred_genres[:2] == ["horror", "mystery"]
    assert len(prefs.preferred_genres) == 5


def test_explicit_preferences_override_learning(db, make_item, add_event):
    """An explicit record wins over history, and partial updates keep other fields."""
    make_item("done-1", genre="horror")
    add_event("u1", "done-1", "complete")

    upsert_preferences(db, "u1", ReadingPreferencesUpdate(preferred_genres=["romance"], disliked_genres=["horror"]))
    updated = upsert_preferences(db, "u1", ReadingPreferencesUpdate(reading_speed="fast"))

    assert updated.preferred_genres == ["romance"]
    assert updated.disliked_genres == ["horror"]
    assert updated.reading_speed == "fast"
    assert updated.learned is False
    assert get_or_learn_preferences(db, "u1").preferred_genres == ["romance"]
