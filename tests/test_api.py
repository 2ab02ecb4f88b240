# FILE: tests/test_api.py
"""HTTP surface through FastAPI's TestClient"""
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from daily_quiz.app import app
from daily_quiz.middleware.body_limit import BodySizeLimitMiddleware
from daily_quiz.middleware.rate_limit import RateLimitMiddleware
from daily_quiz.services.quiz_service import get_quiz_service

PLAYER = {"X-Player-Id": "p1"}
ADMIN = {"X-Admin-Id": "boss"}


@pytest.fixture
def client(service):
    app.dependency_overrides[get_quiz_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["questions"] == 4
    assert response.json()["today"] == "2025-03-01"


def test_today_hides_answers(client):
    data = client.get("/quiz/today").json()

    assert data["date_key"] == "2025-03-01"
    assert data["question"]["id"] == "algo_q0"
    assert "correct_index" not in data["question"]
    assert "explanation" not in data["question"]


def test_submit_flow(client):
    wrong = client.post("/quiz/submit", json={"question_id": "algo_q0", "answer": 0}, headers=PLAYER)
    assert wrong.status_code == 200
    assert wrong.json()["correct"] is False
    assert wrong.json()["feedback"] == {"wrong_index": 0}
    assert wrong.json()["answer"] == {}

    right = client.post(
        "/quiz/submit",
        json={"question_id": "algo_q0", "answer": {"selected_index": 1}, "elapsed_ms": 2000},
        headers=PLAYER,
    )
    body = right.json()
    assert body["correct"] is True
    assert body["points_awarded"] == 60
    assert body["answer"] == {"correct_index": 1}
    assert body["progress"]["current_streak"] == 1

    progress = client.get("/progress", headers=PLAYER).json()
    assert progress["total_points"] == 60

    board = client.get("/leaderboard").json()
    assert board["period_key"] == "2025-03-01"
    assert [(e["identity"], e["score"]) for e in board["entries"]] == [("player:p1", 60)]
    assert client.get("/leaderboard/2025-03-01").json() == board


def test_submit_requires_identity(client):
    response = client.post("/quiz/submit", json={"question_id": "algo_q0", "answer": 1})
    assert response.status_code == 401


def test_guest_token_in_body(client):
    response = client.post("/quiz/start", json={"guest_token": "g-42"})

    assert response.status_code == 200
    assert response.json()["progress"]["identity"] == "guest:g-42"
    assert response.json()["attempt"] == {"attempt_count": 0, "solved": False, "points_awarded": 0}


def test_rollover_is_reported(client):
    response = client.post("/quiz/submit", json={"question_id": "db_q0", "answer": 2}, headers=PLAYER)

    assert response.status_code == 409
    assert response.json()["error"] == "question_rolled_over"
    assert response.json()["current_question_id"] == "algo_q0"


def test_invalid_and_closed_dates(client):
    bad = client.get("/quiz/today", params={"date": "2025-02-30"})
    assert bad.status_code == 400
    assert bad.json()["error"] == "invalid_date"

    closed = client.post(
        "/quiz/submit", json={"question_id": "algo_q0", "answer": 1, "date_key": "2025-02-27"}, headers=PLAYER
    )
    assert closed.status_code == 404
    assert closed.json()["error"] == "not_scheduled"


def test_past_date_reads_do_not_use_up_the_catalog(client):
    for day in ("2025-01-01", "2025-01-02", "2025-01-03", "2025-01-04", "2025-01-05"):
        response = client.get("/quiz/today", params={"date": day})
        assert response.status_code == 404
        assert response.json()["error"] == "not_scheduled"

    today = client.get("/quiz/today")
    assert today.status_code == 200
    assert today.json()["question"]["id"] == "algo_q0"


def test_padded_date_key_is_rejected(client):
    solved = client.post("/quiz/submit", json={"question_id": "algo_q0", "answer": 1}, headers=PLAYER)
    assert solved.status_code == 200

    padded = client.post(
        "/quiz/submit", json={"question_id": "algo_q0", "answer": 1, "date_key": " 2025-03-01"}, headers=PLAYER
    )
    assert padded.status_code == 400
    assert padded.json()["error"] == "invalid_date"


def test_admin_routes_require_admin(client):
    assert client.get("/admin/schedule").status_code == 403
    assert client.get("/admin/questions", headers=PLAYER).status_code == 403


def test_admin_schedule(client):
    created = client.post("/admin/schedule", json={"date": "2025-03-10", "question_id": "os_q0"}, headers=ADMIN)
    assert created.status_code == 200
    assert created.json()["entry"]["assigned_by"] == "boss"

    repeated = client.post("/admin/schedule", json={"date": "2025-03-10", "question_id": "os_q0"}, headers=ADMIN)
    assert repeated.status_code == 200

    taken = client.post("/admin/schedule", json={"date": "2025-03-10", "question_id": "db_q0"}, headers=ADMIN)
    assert taken.status_code == 409
    assert taken.json()["error"] == "already_scheduled"

    unknown = client.post("/admin/schedule", json={"date": "2025-03-11", "question_id": "zz_q0"}, headers=ADMIN)
    assert unknown.status_code == 404

    past = client.post("/admin/schedule", json={"date": "2025-02-01", "question_id": "db_q0"}, headers=ADMIN)
    assert past.status_code == 400

    listing = client.get("/admin/schedule", params={"start": "2025-03-01"}, headers=ADMIN).json()
    assert [e["date_key"] for e in listing["entries"]] == ["2025-03-10"]


def test_admin_catalog_and_test_submit(client):
    questions = client.get("/admin/questions", headers=ADMIN).json()
    assert questions["count"] == 4
    assert questions["questions"][0]["correct_index"] == 1

    result = client.post(
        "/admin/test/submit", json={"question_id": "os_q0", "answer": "Preemption"}, headers=ADMIN
    ).json()
    assert result["correct"] is True
    assert result["recorded"] is False

    assert client.get("/progress", headers=ADMIN).json()["total_points"] == 0


def test_admin_repair_and_integrity(client):
    report = client.post("/admin/schedule/repair", headers=ADMIN).json()
    assert report["changed"] is False
    assert report["version"] == 1

    integrity = client.get("/admin/integrity", headers=ADMIN).json()
    assert integrity["timezone"] == "UTC"


def test_body_size_limit():
    mini = FastAPI()
    mini.add_middleware(BodySizeLimitMiddleware, max_size=64)

    @mini.post("/echo")
    async def echo():
        return {"ok": True}

    client = TestClient(mini)
    assert client.post("/echo", content=b"x" * 10).status_code == 200
    assert client.post("/echo", content=b"x" * 100).status_code == 413


def test_rate_limit_per_identity():
    mini = FastAPI()
    mini.add_middleware(RateLimitMiddleware, rpm=2)

    @mini.get("/ping")
    async def ping():
        return {"ok": True}

    @mini.get("/health")
    async def health():
        return {"ok": True}

    client = TestClient(mini)
    assert client.get("/ping", headers=PLAYER).status_code == 200
    assert client.get("/ping", headers=PLAYER).status_code == 200
    assert client.get("/ping", headers=PLAYER).status_code == 429
    assert client.get("/ping", headers={"X-Player-Id": "p2"}).status_code == 200
    assert all(client.get("/health").status_code == 200 for _ in range(5))
