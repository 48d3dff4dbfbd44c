"""
End-to-end tests through the HTTP API.

Requests go through the FastAPI app with the database dependencies pointed
at the per-test database.
"""
import asyncio
import time

import httpx

from personalizer.main import app
from personalizer.models import EventLog
from personalizer.services import aggregator


def _events(db, name):
    db.expire_all()
    return db.query(EventLog).filter(EventLog.event_name == name).all()


class TestEvents:
    def test_record_event_updates_fingerprint(self, client):
        resp = client.post(
            "/api/users/u1/events",
            json={"event_type": "reread", "item_id": "s1", "emotional_context": "Joy"},
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["event_type"] == "reread"
        assert body["data_points"] == 1

        fp = client.get("/api/users/u1/fingerprint").json()
        assert fp["emotional_profile"]["joy"] == 55
        assert fp["data_points"] == 1
        assert fp["version"] == 2

    def test_unknown_event_type_is_rejected(self, client):
        resp = client.post("/api/users/u1/events", json={"event_type": "teleport", "item_id": "s1"})
        assert resp.status_code == 422

        fp = client.get("/api/users/u1/fingerprint").json()
        assert fp["data_points"] == 0

    def test_event_history_filter(self, client):
        client.post("/api/users/u1/events", json={"event_type": "pause", "item_id": "s1", "emotional_context": "intense"})
        client.post("/api/users/u1/events", json={"event_type": "complete", "item_id": "s1"})

        all_events = client.get("/api/users/u1/events").json()
        assert [e["event_type"] for e in all_events] == ["complete", "pause"]

        pauses = client.get("/api/users/u1/events", params={"event_type": "pause"}).json()
        assert len(pauses) == 1
        assert pauses[0]["emotional_context"] == "intense"

        assert client.get("/api/users/u1/events", params={"event_type": "teleport"}).status_code == 422


class TestFingerprint:
    def test_defaults_on_first_access(self, client):
        fp = client.get("/api/users/new-user/fingerprint").json()
        assert fp["user_id"] == "new-user"
        assert fp["emotional_profile"]["tension"] == 50
        assert fp["emotional_journey_preference"] == "balanced"
        assert fp["confidence_score"] == 0

    def test_insights(self, client):
        insights = client.get("/api/users/u1/fingerprint/insights").json()
        assert len(insights["radar_data"]) == 8
        assert insights["emotional_range"] == "narrow"
        assert insights["journey"]["archetype"] == "balanced"

    def test_reset_keeps_data_points(self, client, db):
        for _ in range(3):
            client.post("/api/users/u1/events", json={"event_type": "reread", "item_id": "s1", "emotional_context": "fear"})

        fp = client.post("/api/users/u1/fingerprint/reset").json()
        assert fp["emotional_profile"]["fear"] == 50
        assert fp["data_points"] == 3
        assert len(_events(db, "fingerprint_reset")) == 1


class TestPreferences:
    def test_get_defaults_then_update(self, client):
        assert client.get("/api/users/u1/preferences").json()["preferred_genres"] == []

        resp = client.put("/api/users/u1/preferences", json={"preferred_genres": ["mystery"]})
        assert resp.status_code == 200
        client.put("/api/users/u1/preferences", json={"reading_speed": "slow"})

        prefs = client.get("/api/users/u1/preferences").json()
        assert prefs["preferred_genres"] == ["mystery"]
        assert prefs["reading_speed"] == "slow"
        assert prefs["learned"] is False


class TestRecommendations:
    def test_recommendations_log_impression(self, client, db, make_item, add_trending):
        make_item("hot-1", genre="horror")
        add_trending("hot-1", rank=1, score=80.0, reads_count=42)

        resp = client.get("/api/users/u1/recommendations", params={"limit": 5})
        assert resp.status_code == 200
        body = resp.json()
        assert body["request_id"]
        assert [item["item_id"] for item in body["items"]] == ["hot-1"]
        assert body["items"][0]["source"] == "trending"
        assert body["items"][0]["reason"] == "Trending this week with 42 reads"

        impressions = _events(db, "recommendations_impression")
        assert len(impressions) == 1
        assert impressions[0].request_id == body["request_id"]
        assert impressions[0].properties["item_ids"] == ["hot-1"]
        assert impressions[0].properties["elapsed_ms"] >= 0

    def test_limit_is_validated(self, client):
        assert client.get("/api/users/u1/recommendations", params={"limit": 0}).status_code == 422
        assert client.get("/api/users/u1/recommendations", params={"limit": 51}).status_code == 422

    def test_empty_catalog_returns_empty_list(self, client):
        body = client.get("/api/users/u1/recommendations").json()
        assert body["items"] == []

    def test_mood_recommendations(self, client, db, make_item):
        make_item("spooky", genre="Horror", days_old=2)
        make_item("sunny", genre="Comedy", days_old=1)

        body = client.get("/api/users/u1/recommendations/mood", params={"mood": "scared"}).json()
        assert [item["item_id"] for item in body["items"]] == ["spooky"]
        assert body["items"][0]["source"] == "mood"
        assert body["items"][0]["reason"] == "Perfect for when you're feeling scared"

        logged = _events(db, "mood_recommendations_requested")
        assert len(logged) == 1
        assert logged[0].request_id == body["request_id"]

    def test_mood_recommendations_unknown_mood(self, client, make_item):
        make_item("sunny", genre="Comedy", days_old=1)
        body = client.get("/api/users/u1/recommendations/mood", params={"mood": "grumpy"}).json()
        assert [item["item_id"] for item in body["items"]] == ["sunny"]
        assert body["items"][0]["source"] == "recency"

    def test_mood_is_required(self, client):
        assert client.get("/api/users/u1/recommendations/mood").status_code == 422

    def test_daily_picks_are_stable(self, client, make_item, add_trending):
        for i in range(5):
            make_item(f"s{i}")
            add_trending(f"s{i}", rank=i + 1, score=90.0 - i * 10)

        first = client.get("/api/users/u1/daily-picks").json()
        second = client.get("/api/users/u1/daily-picks").json()
        assert len(first["items"]) == 3
        assert first == second
        assert all(item["source"] == "daily_pick" for item in first["items"])

    def test_compatibility_unknown_item(self, client):
        body = client.get("/api/users/u1/compatibility/missing").json()
        assert body["item_found"] is False
        assert body["score"] == 50

    def test_compatibility_known_item(self, client, make_item):
        make_item("calm", tension_level="medium")
        body = client.get("/api/users/u1/compatibility/calm").json()
        assert body["item_found"] is True
        assert body["score"] == 65


class TestFeedback:
    def test_click_and_dismiss_are_logged(self, client, db):
        payload = {"item_id": "s1", "request_id": "req-1", "position": 2, "source": "trending", "user_id": "u1"}
        assert client.post("/api/events/recommendation-click", json=payload).status_code == 204
        assert client.post("/api/events/recommendation-dismiss", json=payload).status_code == 204

        clicks = _events(db, "recommendation_clicked")
        assert len(clicks) == 1
        assert clicks[0].properties["position"] == 2
        assert len(_events(db, "recommendation_dismissed")) == 1

    def test_missing_item_id_is_rejected(self, client):
        assert client.post("/api/events/recommendation-click", json={}).status_code == 422


class TestConcurrency:
    def test_slow_recommendations_do_not_block_other_requests(self, client, monkeypatch):
        """A recommendations request stuck on a slow generator leaves the server free for others."""
        def slow_generator(db, user_id, limit, now):
            time.sleep(1.0)
            return []

        monkeypatch.setattr(aggregator, "GENERATORS", (("slow", slow_generator),))

        async def run():
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
                slow = asyncio.ensure_future(ac.get("/api/users/u1/recommendations"))
                await asyncio.sleep(0.2)
                start = time.perf_counter()
                health = await ac.get("/health")
                latency = time.perf_counter() - start
                return health, latency, await slow

        health, latency, recommendations = asyncio.run(run())

        assert health.status_code == 200
        assert recommendations.status_code == 200
        assert latency < 0.5
