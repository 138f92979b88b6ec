from fastapi.testclient import TestClient

import api_server
from api.routes import get_assessment_settings, get_provider
from config import AssessmentSettings
from conftest import ScriptedProvider, make_evaluation

ANSWER = "Use a composite index and confirm the plan with EXPLAIN ANALYZE."


def _client(provider: ScriptedProvider) -> TestClient:
    api_server.app.dependency_overrides[get_provider] = lambda: provider
    api_server.app.dependency_overrides[get_assessment_settings] = lambda: AssessmentSettings()
    return TestClient(api_server.app)


def teardown_function(_):
    api_server.app.dependency_overrides.clear()


def test_full_assessment_flow():
    provider = ScriptedProvider()
    client = _client(provider)
    headers = {"X-User-Id": "candidate-1"}

    created = client.post(
        "/api/assessments",
        json={"mode": "topics", "topics": ["SQL"], "difficulty": "hard", "num_questions": 2},
        headers=headers,
    )
    assert created.status_code == 201
    session_id = created.json()["session_id"]
    assert created.json()["status"] == "IN_PROGRESS"
    assert created.json()["difficulty"] == "HARD"

    first = client.post(f"/api/assessments/{session_id}/next-question", json={}, headers=headers).json()
    assert first["done"] is False
    question = first["question"]
    assert question["index"] == 0 and question["question_number"] == 1

    provider.evaluations.append(make_evaluation(3))
    answered = client.post(
        f"/api/assessments/{session_id}/answers",
        json={"question_id": question["question_id"], "answer_text": ANSWER},
        headers=headers,
    )
    assert answered.status_code == 201
    assert answered.json()["follow_up_offered"] is True

    again = client.post(
        f"/api/assessments/{session_id}/answers",
        json={"question_id": question["question_id"], "answer_text": ANSWER},
        headers=headers,
    )
    assert again.status_code == 409
    assert again.json()["detail"]["error"] == "CONFLICT"
    assert again.json()["detail"]["retryable"] is False

    follow_up = client.post(
        f"/api/assessments/{session_id}/next-question",
        json={"wants_follow_up": True, "parent_question_id": question["question_id"]},
        headers=headers,
    ).json()["question"]
    assert follow_up["is_follow_up"] is True and follow_up["index"] == 1
    client.post(
        f"/api/assessments/{session_id}/answers",
        json={"question_id": follow_up["question_id"], "answer_text": ANSWER},
        headers=headers,
    )

    second = client.post(f"/api/assessments/{session_id}/next-question", json={}, headers=headers).json()["question"]
    client.post(
        f"/api/assessments/{session_id}/answers",
        json={"question_id": second["question_id"], "answer_text": ANSWER},
        headers=headers,
    )

    done = client.post(f"/api/assessments/{session_id}/next-question", json={}, headers=headers).json()
    assert done["done"] is True
    assert done["outcome"]["status"] == "COMPLETED"

    report = client.get(f"/api/assessments/{session_id}/report", headers=headers)
    assert report.status_code == 200
    body = report.json()
    assert body["report"]["overall_score"] == 5.0
    assert body["transcript"][0]["follow_up"]["question"]["id"] == follow_up["question_id"]
    assert client.get(f"/api/assessments/{session_id}/report", headers=headers).json() == body

    state = client.get(f"/api/assessments/{session_id}", headers=headers).json()
    assert state["has_report"] is True and state["answered_count"] == 2


def test_error_mapping():
    provider = ScriptedProvider()
    client = _client(provider)
    owner = {"X-User-Id": "owner"}

    invalid = client.post("/api/assessments", json={"mode": "ROLE", "role": "SRE"}, headers=owner)
    assert invalid.status_code == 400
    assert invalid.json()["detail"]["error"] == "VALIDATION"

    both = client.post(
        "/api/assessments",
        json={"mode": "ROLE", "role": "SRE", "num_questions": 3, "time_limit_mins": 10},
        headers=owner,
    )
    assert both.status_code == 400

    for bad in ({"num_questions": "abc"}, {"topics": "SQL"}, {"no_repeats": "sometimes"}):
        mistyped = client.post("/api/assessments", json={"mode": "TOPICS", "topics": ["SQL"], "num_questions": 3, **bad}, headers=owner)
        assert mistyped.status_code == 400
        assert mistyped.json()["detail"]["error"] == "VALIDATION"

    session_id = client.post(
        "/api/assessments", json={"mode": "ROLE", "role": "SRE", "time_limit_mins": 10}, headers=owner
    ).json()["session_id"]

    assert client.get(f"/api/assessments/{session_id}", headers={"X-User-Id": "someone"}).status_code == 403
    assert client.get("/api/assessments/missing", headers=owner).status_code == 404
    assert client.get(f"/api/assessments/{session_id}/report", headers=owner).status_code == 422

    abandoned = client.patch(f"/api/assessments/{session_id}/status", json={"status": "ABANDONED"}, headers=owner)
    assert abandoned.status_code == 200
    assert abandoned.json()["status"] == "ABANDONED"
    repeat = client.patch(f"/api/assessments/{session_id}/status", json={"status": "COMPLETED"}, headers=owner)
    assert repeat.json()["status"] == "ABANDONED"
    assert repeat.json()["ended_at"] == abandoned.json()["ended_at"]


def test_generation_failure_maps_to_bad_gateway():
    from content_provider import GenerationFailed

    provider = ScriptedProvider()
    provider.questions.append(GenerationFailed("upstream down"))
    client = _client(provider)
    owner = {"X-User-Id": "owner"}
    session_id = client.post(
        "/api/assessments", json={"mode": "TOPICS", "topics": ["Go"], "num_questions": 1}, headers=owner
    ).json()["session_id"]
    failed = client.post(f"/api/assessments/{session_id}/next-question", json={}, headers=owner)
    assert failed.status_code == 502
    assert failed.json()["detail"]["error"] == "GENERATION_FAILED"
    assert failed.json()["detail"]["retryable"] is True


def test_resume_upload_and_missing_header():
    provider = ScriptedProvider()
    client = _client(provider)
    text = "Senior backend engineer. " * 10
    uploaded = client.post("/api/resumes", json={"file_name": "cv.pdf", "text": text}, headers={"X-User-Id": "owner"})
    assert uploaded.status_code == 201
    assert uploaded.json()["profile"]["experience_level"] == "mid"

    short = client.post("/api/resumes", json={"text": "tiny"}, headers={"X-User-Id": "owner"})
    assert short.status_code == 400
    assert client.post("/api/resumes", json={"text": text}).status_code == 422
