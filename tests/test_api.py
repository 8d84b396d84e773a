"""
Tests for the HTTP API.
"""

import pytest
from fastapi.testclient import TestClient

from grade_engine.ai.batch_grader import AIGradingClient
from grade_engine.api.app import create_app
from grade_engine.core.service import GradingService
from grade_engine.storage.submission_store import InMemorySubmissionStore

from conftest import FakeProvider, batch_response

ASSIGNMENT = {
    "id": "hw1",
    "title": "Of Mice and Men, chapters 1-3",
    "auto_ai_grading_enabled": True,
    "questions": [
        {"type": "choice", "id": "q1", "text": "Where do they camp?", "points": 5,
         "options": ["By the river", "In town"], "correct_option_index": 0},
        {"type": "choice", "id": "q2", "text": "What is in Lennie's pocket?", "points": 5,
         "options": ["A coin", "A dead mouse"], "correct_option_index": 1},
        {"type": "essay", "id": "q3", "text": "Why does George stay with Lennie?", "points": 10},
    ],
}

ANSWERS = [
    {"question_id": "q1", "selected_option_index": 0},
    {"question_id": "q2", "selected_option_index": 1},
    {"question_id": "q3", "text": "Because of the dream they share."},
]


@pytest.fixture
def provider():
    return FakeProvider(batch_response((0, "q3", 8, "Solid reasoning")))


@pytest.fixture
def client(provider):
    service = GradingService(InMemorySubmissionStore(), AIGradingClient(provider))
    return TestClient(create_app(service))


def submit(client, answers=ANSWERS, **extra):
    response = client.post("/api/assignments/hw1/submissions", json={"student_id": "student-1", "answers": answers, **extra})
    assert response.status_code == 201, response.text
    return response.json()["submission_id"]


@pytest.fixture
def registered(client):
    response = client.post("/api/assignments", json=ASSIGNMENT)
    assert response.status_code == 201, response.text
    return client


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["storage"] == "connected"
    assert response.json()["ai_provider"] == "fake/model"


def test_register_assignment(client):
    response = client.post("/api/assignments", json=ASSIGNMENT)

    assert response.status_code == 201
    body = response.json()
    assert body["assignment_id"] == "hw1"
    assert body["max_score"] == 20
    assert body["question_ids"] == ["q1", "q2", "q3"]


def test_register_invalid_assignment(client):
    bad = dict(ASSIGNMENT, questions=[ASSIGNMENT["questions"][0], ASSIGNMENT["questions"][0]])
    assert client.post("/api/assignments", json=bad).status_code == 422


def test_full_lifecycle(registered):
    """Submit, grade, override, publish, then read both views."""
    client = registered
    submission_id = submit(client)

    student = client.get(f"/api/submissions/{submission_id}/grade", params={"view": "student"}).json()
    assert student["published"] is False
    assert student["message"] == "pending AI/teacher review"

    graded = client.post(f"/api/submissions/{submission_id}/grade")
    assert graded.status_code == 200
    assert graded.json()["total_score"] == 18
    assert graded.json()["status"] == "ai-graded"
    assert graded.json()["per_question"]["q3"]["source"] == "ai"

    override = client.put(
        f"/api/submissions/{submission_id}/questions/q3/grade",
        json={"score": 10, "feedback": "excellent insight"},
    )
    assert override.status_code == 200
    assert override.json()["total_score"] == 20
    assert override.json()["per_question"]["q3"]["source"] == "manual"

    published = client.post(f"/api/submissions/{submission_id}/publish")
    assert published.status_code == 200
    assert published.json()["status"] == "published"

    student = client.get(f"/api/submissions/{submission_id}/grade", params={"view": "student"}).json()
    assert student["published"] is True
    assert student["total_score"] == 20
    assert student["percentage"] == 100
    assert student["feedback"]["q3"] == "excellent insight"

    roster = client.get("/api/assignments/hw1/submissions").json()
    assert [(entry["student_id"], entry["label"]) for entry in roster] == [("student-1", "Graded")]


def test_publish_not_ready(registered):
    submission_id = submit(registered, answers=ANSWERS[:2])
    registered.post(f"/api/submissions/{submission_id}/grade")

    response = registered.post(f"/api/submissions/{submission_id}/publish")

    assert response.status_code == 409
    assert response.json()["error"] == "NotReadyError"
    assert response.json()["context"]["missing_question_ids"] == ["q3"]


def test_published_is_terminal(registered):
    submission_id = submit(registered)
    registered.post(f"/api/submissions/{submission_id}/grade")
    registered.post(f"/api/submissions/{submission_id}/publish")

    override = registered.put(f"/api/submissions/{submission_id}/questions/q3/grade", json={"score": 1})
    regrade = registered.post(f"/api/submissions/{submission_id}/grade")

    assert override.status_code == 409
    assert regrade.status_code == 409
    assert override.json()["error"] == "AlreadyPublishedError"
    assert registered.get(f"/api/submissions/{submission_id}/grade").json()["total_score"] == 18


def test_out_of_range_override(registered):
    submission_id = submit(registered)
    response = registered.put(f"/api/submissions/{submission_id}/questions/q3/grade", json={"score": 11})

    assert response.status_code == 422
    assert response.json()["detail"] == "out-of-range score"


def test_invalid_answers_rejected(registered):
    response = registered.post(
        "/api/assignments/hw1/submissions",
        json={"student_id": "student-1", "answers": [{"question_id": "q1", "selected_option_index": 7}]},
    )
    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"


def test_retried_submission_is_idempotent(registered):
    first = submit(registered, submission_id="retry-1")
    second = submit(registered, submission_id="retry-1")

    assert first == second == "retry-1"
    assert len(registered.get("/api/assignments/hw1/submissions").json()) == 1


def test_not_found(client):
    assert client.get("/api/submissions/missing/grade").status_code == 404
    assert client.post("/api/assignments/missing/submissions", json={"student_id": "s"}).status_code == 404
    assert client.get("/api/assignments/missing/submissions").status_code == 404


def test_correlation_id_header(client):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_reregistering_graded_assignment_rejected(registered):
    """Totals stay within the maximum because graded questions cannot be re-weighted."""
    submission_id = submit(registered)
    registered.post(f"/api/submissions/{submission_id}/grade")
    registered.put(f"/api/submissions/{submission_id}/questions/q3/grade", json={"score": 10})

    reweighted = dict(ASSIGNMENT, questions=ASSIGNMENT["questions"][:2] + [dict(ASSIGNMENT["questions"][2], points=2)])
    response = registered.post("/api/assignments", json=reweighted)

    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"

    grade = registered.get(f"/api/submissions/{submission_id}/grade").json()
    assert grade["total_score"] == 20
    assert grade["total_score"] <= grade["max_score"]
    assert grade["per_question"]["q3"]["max_points"] == 10


def test_reregistering_unchanged_assignment_is_accepted(registered):
    submit(registered)
    response = registered.post("/api/assignments", json=ASSIGNMENT)

    assert response.status_code == 201
    assert response.json()["max_score"] == 20
