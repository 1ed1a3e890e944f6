"""
Integration Tests for the Study API.

Runs the FastAPI app in-process with the engine dependency pointed at the
in-memory test database.
"""

import pytest
from fastapi.testclient import TestClient

import src.api.main as api_main
from src.api.routers.study_router import get_study_engine

pytestmark = pytest.mark.integration


@pytest.fixture
def client(study_engine):
    api_main.app.dependency_overrides[get_study_engine] = lambda: study_engine
    yield TestClient(api_main.app)
    api_main.app.dependency_overrides.clear()


class TestHealth:
    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["service"] == "signal-drill"

    def test_health_reports_database(self, client, monkeypatch):
        monkeypatch.setattr(api_main, "check_connection", lambda: None)

        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["components"]["database"] == "ok"

    def test_health_reports_database_errors(self, client, monkeypatch):
        from sqlalchemy.exc import OperationalError

        def fail():
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        monkeypatch.setattr(api_main, "check_connection", fail)

        body = client.get("/health").json()

        assert body["status"] == "unhealthy"
        assert "database" in body["errors"]


class TestSession:
    def test_review_session_for_new_learner(self, client):
        response = client.post(
            "/study/session",
            json={"learner_id": "learner-1", "options": {"category": "Signale", "regulation": "DS 301"}},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 3
        assert [i["question"]["id"] for i in body["items"]] == ["sig-001", "sig-003", "sig-004"]
        assert body["items"][0]["progress"] is None
        assert body["items"][0]["question"]["answers"][0] == {"text": "Halt", "is_correct": True}

    def test_guest_session_defaults(self, client):
        response = client.post("/study/session", json={})

        assert response.status_code == 200
        assert response.json()["total"] == 6

    def test_boxes_without_box_number(self, client):
        response = client.post("/study/session", json={"learner_id": "learner-1", "options": {"mode": "boxes"}})

        assert response.status_code == 422

    def test_batch_size_above_maximum(self, client):
        response = client.post("/study/session", json={"options": {"batch_size": 1000}})

        assert response.status_code == 422

    def test_due_card_carries_progress(self, client, clock):
        client.post("/study/answer", json={"learner_id": "learner-1", "question_id": "bd-002", "score": 0})
        clock.advance(days=1)

        body = client.post("/study/session", json={"learner_id": "learner-1"}).json()

        first = body["items"][0]
        assert first["question"]["id"] == "bd-002"
        assert first["progress"]["box_number"] == 1
        assert first["progress"]["last_score"] == 0


class TestAnswer:
    def test_answer_updates_progress_and_stats(self, client):
        response = client.post(
            "/study/answer", json={"learner_id": "learner-1", "question_id": "sig-001", "score": 5}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["persisted"] is True
        assert body["box_number"] == 2
        assert body["streak"] == 1
        assert body["xp_gained"] == 15
        assert body["next_review_at"].startswith("2024-03-07T08:00")

        stats = client.get("/study/stats/learner-1").json()
        assert stats == {"xp": 15, "totalCorrect": 1, "totalIncorrect": 0, "streakDays": 1}

    def test_guest_answer(self, client):
        body = client.post("/study/answer", json={"question_id": "sig-001", "score": 3}).json()

        assert body["persisted"] is False
        assert body["box_number"] is None

    @pytest.mark.parametrize("score", [7, -1, "five", 2.5, None])
    def test_invalid_score(self, client, score):
        response = client.post(
            "/study/answer", json={"learner_id": "learner-1", "question_id": "sig-001", "score": score}
        )

        assert response.status_code == 422

    def test_unknown_question(self, client):
        response = client.post(
            "/study/answer", json={"learner_id": "learner-1", "question_id": "missing", "score": 4}
        )

        assert response.status_code == 404


class TestStatsAndBoxes:
    def test_stats_for_unknown_learner(self, client):
        assert client.get("/study/stats/nobody").json() == {
            "xp": 0,
            "totalCorrect": 0,
            "totalIncorrect": 0,
            "streakDays": 0,
        }

    def test_box_overview(self, client):
        client.post("/study/answer", json={"learner_id": "learner-1", "question_id": "sig-001", "score": 1})
        client.post("/study/answer", json={"learner_id": "learner-1", "question_id": "sig-002", "score": 4})

        boxes = client.get("/study/boxes/learner-1").json()

        assert [b["box_number"] for b in boxes] == [1, 2, 3, 4, 5]
        assert boxes[0]["count"] == 1
        assert boxes[1]["count"] == 1
        assert sum(b["due"] for b in boxes) == 0
