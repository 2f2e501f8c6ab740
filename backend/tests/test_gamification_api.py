"""Integration tests for the gamification-processor endpoints.

Covers:
  POST /quiz-gamification-processor
  GET  /quiz-gamification-processor/progress
  GET  /quiz-gamification-processor/leaderboard/{category}
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from conftest import add_quiz, auth
from quiz_gamification.services import outbox
from quiz_gamification.store.base import LEADERBOARD, QUIZ_ANALYTICS, QUIZ_SCORES, USER_POINTS
from quiz_gamification.store.sql import SqlRecordStore


def _payload(quiz, questions, *, answer="A", response_time=1000, **extra):
    body = {
        "quiz_id": quiz.id,
        "quiz_result": {
            "responses": [
                {"question_id": q.id, "user_answer": answer, "response_time": response_time}
                for q in questions
            ],
            "time_taken": 45,
            # client-side numbers are ignored
            "score": 9999,
            "percentage": 100,
        },
        "questions": [q.id for q in questions],
    }
    body.update(extra)
    return body


def test_process_requires_auth(client: TestClient, db: Session):
    quiz, questions = add_quiz(db)
    resp = client.post("/quiz-gamification-processor", json=_payload(quiz, questions))
    assert resp.status_code == 401


def test_process_missing_quiz_id_is_400(client: TestClient):
    resp = client.post("/quiz-gamification-processor", json={"quiz_result": {"responses": []}}, headers=auth())
    assert resp.status_code == 400
    assert resp.json()["error_code"] == "validation_error"


def test_process_returns_summary(client: TestClient, db: Session):
    quiz, questions = add_quiz(db)

    resp = client.post(
        "/quiz-gamification-processor",
        json=_payload(quiz, questions, category="biology", user_name="Ada"),
        headers=auth("ada"),
    )

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["message"] == "Quiz results processed successfully"
    assert body["new_streak"] == 1
    assert body["total_points"] == 45
    assert body["current_level"] == 1
    assert body["achievements_unlocked"] == ["perfect_score", "high_achiever"]
    assert body["deferred_updates"] == []

    store = SqlRecordStore(db)
    [attempt] = store.get(QUIZ_SCORES, {"id": body["score_id"]})
    assert attempt["score"] == 45
    assert attempt["game_mode"] == "challenge"
    [entry] = store.get(LEADERBOARD, {"user_id": "ada"})
    assert entry["category"] == "biology"
    assert entry["user_name"] == "Ada"
    [analytics] = store.get(QUIZ_ANALYTICS, {"user_id": "ada"})
    assert analytics["quiz_id"] == quiz.id
    assert analytics["average_time"] == 45


def test_processor_and_submit_score_identically(client: TestClient, db: Session):
    quiz, questions = add_quiz(db)
    responses = [
        {"question_id": questions[0].id, "user_answer": "A", "response_time": 4000},
        {"question_id": questions[1].id, "user_answer": "A", "response_time": 12000},
        {"question_id": questions[2].id, "user_answer": "C", "response_time": 2000},
    ]

    submitted = client.post(
        f"/quiz-service/{quiz.id}/submit",
        json={"answers": responses, "total_time": 18, "hints_used_list": [questions[1].id]},
        headers=auth("same-1"),
    ).json()
    processed = client.post(
        "/quiz-gamification-processor",
        json={
            "quiz_id": quiz.id,
            "quiz_result": {"responses": responses, "time_taken": 18, "hints_used_list": [questions[1].id]},
        },
        headers=auth("same-2"),
    ).json()

    store = SqlRecordStore(db)
    [a] = store.get(QUIZ_SCORES, {"id": submitted["score_id"]})
    [b] = store.get(QUIZ_SCORES, {"id": processed["score_id"]})
    for field in ("score", "max_score", "percentage", "time_bonus", "hint_penalty", "correct_answers"):
        assert a[field] == b[field]
    assert processed["total_points"] == submitted["final_score"]


def test_processor_accepts_question_objects(client: TestClient, db: Session):
    quiz, questions = add_quiz(db)
    body = _payload(quiz, questions[:1])
    body["questions"] = [{"id": q.id, "question_text": "ignored"} for q in questions]

    resp = client.post("/quiz-gamification-processor", json=body, headers=auth())

    [attempt] = SqlRecordStore(db).get(QUIZ_SCORES, {"id": resp.json()["score_id"]})
    assert attempt["total_questions"] == 3


def test_processor_rejects_non_numeric_question_ids(client: TestClient, db: Session):
    quiz, questions = add_quiz(db)
    for bad in (["abc"], [{"id": "q-1"}], [{"question_text": "no id"}]):
        body = _payload(quiz, questions)
        body["questions"] = bad

        resp = client.post("/quiz-gamification-processor", json=body, headers=auth())

        assert resp.status_code == 400
        assert resp.json()["error_code"] == "validation_error"
    assert SqlRecordStore(db).get(QUIZ_SCORES) == []


def test_streak_extends_from_yesterday(client: TestClient, db: Session):
    quiz, questions = add_quiz(db)
    store = SqlRecordStore(db)
    store.insert(
        USER_POINTS,
        {
            "user_id": "streaker",
            "total_points": 100,
            "streak_count": 4,
            "longest_streak": 4,
            "current_level": 1,
            "last_quiz_date": datetime.now(timezone.utc) - timedelta(days=1),
        },
    )

    body = client.post(
        "/quiz-gamification-processor", json=_payload(quiz, questions), headers=auth("streaker")
    ).json()

    assert body["new_streak"] == 5
    row = store.get(USER_POINTS, {"user_id": "streaker"})[0]
    assert row["longest_streak"] == 5
    assert row["total_points"] == 145


def test_busy_user_lock_defers_gamification(client: TestClient, db: Session):
    quiz, questions = add_quiz(db)

    with patch("quiz_gamification.services.pipeline.locks.user_lock") as user_lock:
        user_lock.return_value.__enter__.return_value = False
        resp = client.post("/quiz-gamification-processor", json=_payload(quiz, questions), headers=auth("busy"))

    body = resp.json()
    assert resp.status_code == 200
    assert body["deferred_updates"] == ["user_points", "achievements", "leaderboard", "analytics"]
    assert body["total_points"] == 0
    assert body["achievements_unlocked"] == []

    store = SqlRecordStore(db)
    assert len(outbox.pending_entries(store)) == 4
    assert store.get(USER_POINTS, {"user_id": "busy"}) == []

    counts = outbox.replay_pending(store)

    assert counts["done"] == 4
    assert store.get(USER_POINTS, {"user_id": "busy"})[0]["total_points"] == 45
    assert len(store.get(LEADERBOARD, {"user_id": "busy"})) == 1


def test_progress_endpoint(client: TestClient, db: Session):
    quiz, questions = add_quiz(db)
    client.post("/quiz-gamification-processor", json=_payload(quiz, questions), headers=auth("p1"))

    resp = client.get("/quiz-gamification-processor/progress", headers=auth("p1"))

    assert resp.status_code == 200
    body = resp.json()
    assert body["user_id"] == "p1"
    assert body["total_points"] == 45
    assert body["streak_count"] == 1
    assert body["points_to_next_level"] == 955
    assert {a["achievement_type"] for a in body["achievements"]} == {"perfect_score", "high_achiever"}


def test_progress_for_new_user(client: TestClient):
    body = client.get("/quiz-gamification-processor/progress", headers=auth("newbie")).json()
    assert body["total_points"] == 0
    assert body["current_level"] == 1
    assert body["achievements"] == []


def test_leaderboard_endpoint(client: TestClient, db: Session):
    quiz, questions = add_quiz(db)
    client.post("/quiz-gamification-processor", json=_payload(quiz, questions), headers=auth("top"))
    client.post("/quiz-gamification-processor", json=_payload(quiz, questions, answer="B"), headers=auth("bottom"))

    resp = client.get("/quiz-gamification-processor/leaderboard/science")

    assert resp.status_code == 200
    entries = resp.json()["entries"]
    assert [(e["user_id"], e["rank"]) for e in entries] == [("top", 1), ("bottom", 2)]
    assert entries[0]["games_played"] == 1
