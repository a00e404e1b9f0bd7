from fastapi.testclient import TestClient
import pytest

from assessment_engine.core.assessment_manager import AssessmentManager
from assessment_engine.server.api_server import create_api_app

from conftest import forty_words

QUIZ = {
    "id": "quiz-1",
    "title": "Warm-up",
    "course_id": "bio",
    "time_limit_minutes": 5,
    "xp_reward": 50,
    "questions": [
        {"id": "q1", "prompt": "2 + 2?", "kind": "multiple_choice", "options": ["3", "4", "5"], "correct_index": 1},
        {"id": "q2", "prompt": "Sky is blue.", "kind": "true_false", "correct_index": 0},
        {"id": "q3", "prompt": "Describe a cell.", "kind": "essay", "min_words": 30},
    ],
}


@pytest.fixture
def client():
    return TestClient(create_api_app(AssessmentManager()))


@pytest.fixture
def attempt_id(client):
    assert client.post("/quizzes", json=QUIZ).status_code == 201
    response = client.post("/attempts", json={"quiz_id": "quiz-1", "learner_id": "ada"})
    assert response.status_code == 201
    return response.json()["attempt_id"]


def test_about(client):
    assert client.get("/").json()["version"]


def test_quiz_view_hides_answer_keys(client):
    client.post("/quizzes", json=QUIZ)
    questions = client.get("/quizzes/quiz-1").json()["questions"]
    assert questions[0]["options"] == ["3", "4", "5"]
    assert all("correct_index" not in question for question in questions)
    assert questions[2]["requires_manual_review"]


def test_choice_question_without_key_is_rejected(client):
    quiz = dict(QUIZ, questions=[{"id": "q1", "prompt": "?", "kind": "true_false"}])
    assert client.post("/quizzes", json=quiz).status_code == 422


def test_take_and_submit_attempt(client, attempt_id):
    client.post(f"/attempts/{attempt_id}/answers", json={"question_index": 0, "kind": "option", "option_index": 1})
    client.post(f"/attempts/{attempt_id}/answers", json={"question_index": 1, "kind": "option", "option_index": 1})
    view = client.post(
        f"/attempts/{attempt_id}/answers",
        json={"question_index": 2, "kind": "essay", "text": forty_words()},
    ).json()
    assert view["answered_count"] == 3
    assert view["current_index"] == 0

    assert client.post(f"/attempts/{attempt_id}/advance").json()["current_index"] == 1
    assert client.post(f"/attempts/{attempt_id}/jump", json={"question_index": 2}).json()["current_index"] == 2

    result = client.post(f"/attempts/{attempt_id}/submit").json()
    assert result["score"] == pytest.approx(50.0)
    assert result["has_pending_manual_review"]
    assert result["question_results"] == [True, False, None]

    late = client.post(f"/attempts/{attempt_id}/answers", json={"question_index": 0, "kind": "option", "option_index": 0})
    assert late.status_code == 409
    assert client.get("/learners/ada/level").json()["xp"] == 50


def test_bad_answers(client, attempt_id):
    out_of_range = client.post(f"/attempts/{attempt_id}/answers", json={"question_index": 9, "kind": "option"})
    assert out_of_range.status_code == 422
    wrong_kind = client.post(f"/attempts/{attempt_id}/answers", json={"question_index": 2, "kind": "option"})
    assert wrong_kind.status_code == 422
    assert client.post("/attempts/missing/submit").status_code == 404


def test_tick_runs_clock_out(client, attempt_id):
    view = client.post(f"/attempts/{attempt_id}/tick", json={"elapsed_seconds": 299}).json()
    assert view["remaining_seconds"] == 1
    view = client.post(f"/attempts/{attempt_id}/tick", json={}).json()
    assert view["state"] == "submitted"
    assert view["result"]["timed_out"]


def test_discard_attempt(client, attempt_id):
    assert client.delete(f"/attempts/{attempt_id}").status_code == 204
    assert client.get(f"/attempts/{attempt_id}").status_code == 404


def test_course_grade_and_goal(client):
    payload = {
        "weights": {"assignments": 0.4, "quizzes": 0.3, "participation": 0.1, "midterm": 0.1, "final_exam": 0.1},
        "totals": {
            "assignments": {"earned": 180, "possible": 200},
            "quizzes": {"earned": 85, "possible": 100},
            "participation": {"earned": 10, "possible": 10},
            "midterm": {"earned": 88, "possible": 100},
        },
        "course_name": "Biology",
    }
    assert client.get("/courses/bio/grade").status_code == 404
    grade = client.put("/courses/bio/grade", json=payload).json()
    assert grade["overall_percentage"] == pytest.approx(80.3)
    assert grade["letter_grade"] == "B-"
    assert client.get("/gpa").json()["gpa"] == pytest.approx(2.7)

    assert client.get("/courses/bio/goal").status_code == 404
    assert client.post("/courses/bio/projection", json={"item_count": 1, "possible_points": 20}).status_code == 404
    client.put("/courses/bio/goal", json={"target_letter_grade": "A-"})
    projection = client.post("/courses/bio/projection", json={"item_count": 1, "possible_points": 20}).json()
    assert projection["required_average"] == pytest.approx(356.75)
    assert projection["status"] == "behind"
    assert projection["is_unreachable"]


def test_invalid_weights_are_unprocessable(client):
    payload = {"weights": {"final_exam": 0.5}, "totals": {}}
    assert client.put("/courses/bio/grade", json=payload).status_code == 422
    assert client.put("/courses/bio/goal", json={"target_letter_grade": "Z"}).status_code == 422


def test_fractional_tick_payload(client, attempt_id):
    view = client.post(f"/attempts/{attempt_id}/tick", json={"elapsed_seconds": 0.5}).json()
    assert view["remaining_seconds"] == 299
    view = client.post(f"/attempts/{attempt_id}/tick", json={"elapsed_seconds": 299.5}).json()
    assert view["state"] == "submitted"


def test_quiz_statistics_and_curve_routes(client, attempt_id):
    client.post(f"/attempts/{attempt_id}/answers", json={"question_index": 0, "kind": "option", "option_index": 1})
    client.post(f"/attempts/{attempt_id}/submit")

    stats = client.get("/quizzes/quiz-1/statistics").json()
    assert stats["count"] == 1
    assert stats["mean"] == pytest.approx(50.0)
    assert len(stats["distribution"]) == 10

    curved = client.post("/quizzes/quiz-1/curve", json={"kind": "flat", "amount": 15}).json()
    assert curved["scores"] == {attempt_id: pytest.approx(65.0)}
    assert client.post("/quizzes/quiz-1/curve", json={"kind": "sideways"}).status_code == 422
    assert client.get("/quizzes/missing/statistics").status_code == 404


def test_late_assignments_in_course_grade(client):
    payload = {
        "totals": {category: {"earned": 1, "possible": 1} for category in ("quizzes", "participation", "midterm", "final_exam")},
        "assignments": [
            {"earned_points": 100, "possible_points": 100},
            {
                "earned_points": 80,
                "possible_points": 100,
                "due_at": "2024-03-01T23:59:00",
                "submitted_at": "2024-03-04T23:59:00",
                "policy": {"kind": "percent_per_day", "per_day": 10},
            },
        ],
    }
    grade = client.put("/courses/bio/grade", json=payload).json()
    assignments = next(b for b in grade["breakdowns"] if b["category"] == "assignments")
    assert assignments["earned_points"] == pytest.approx(150.0)
    assert grade["overall_percentage"] == pytest.approx(90.0)

    stats = client.get("/courses/statistics").json()
    assert stats["count"] == 1
    assert stats["mean"] == pytest.approx(90.0)
