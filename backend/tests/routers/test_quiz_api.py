import json

import pytest
from fastapi.testclient import TestClient

from app.config import settings
from app.main import app
from app.services.quiz_generator import get_quiz_client


@pytest.fixture
def api(upstream):
    app.dependency_overrides[get_quiz_client] = lambda: upstream.client()
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def test_generate_quiz_success(api, upstream, quiz_data):
    upstream.reply_text(json.dumps(quiz_data(3)))
    response = api.post("/api/generate-quiz", json={"topic": "Volcanoes", "numQuestions": 3})

    assert response.status_code == 200
    body = response.json()
    assert body == quiz_data(3)
    for item in body:
        assert set(item) == {"questionText", "options", "correctAnswer", "explanation"}
        assert item["correctAnswer"] in item["options"]
    assert len(upstream.requests) == 1


def test_num_questions_is_coerced(api, upstream):
    response = api.post("/api/generate-quiz", json={"topic": "Volcanoes", "numQuestions": "2"})
    assert response.status_code == 200
    prompt = json.loads(upstream.requests[0].content)["contents"][0]["parts"][0]["text"]
    assert "2 multiple-choice questions" in prompt


def test_get_is_not_allowed(api, upstream):
    response = api.get("/api/generate-quiz")
    assert response.status_code == 405
    assert response.json() == {"error": "Method Not Allowed"}
    assert upstream.requests == []


def test_missing_topic(api, upstream):
    response = api.post("/api/generate-quiz", json={"numQuestions": 5})
    assert response.status_code == 400
    assert "topic" in response.json()["error"]
    assert upstream.requests == []


def test_missing_num_questions(api, upstream):
    response = api.post("/api/generate-quiz", json={"topic": "Volcanoes"})
    assert response.status_code == 400
    assert "numQuestions" in response.json()["error"]
    assert upstream.requests == []


@pytest.mark.parametrize(
    "payload",
    [
        {"topic": "   ", "numQuestions": 5},
        {"topic": "Volcanoes", "numQuestions": 0},
        {"topic": "Volcanoes", "numQuestions": "many"},
        {"topic": "Volcanoes", "numQuestions": 10_000},
    ],
)
def test_invalid_input(api, upstream, payload):
    response = api.post("/api/generate-quiz", json=payload)
    assert response.status_code == 400
    assert response.json()["error"]
    assert upstream.requests == []


def test_missing_api_key(monkeypatch, upstream):
    monkeypatch.setattr(settings, "gemini_api_key", "")
    with TestClient(app) as client:
        response = client.post("/api/generate-quiz", json={"topic": "Volcanoes", "numQuestions": 1})
    assert response.status_code == 500
    assert response.json() == {"error": "Server configuration error: API key missing."}


def test_upstream_error_is_forwarded(api, upstream):
    upstream.reply({"error": {"code": 429, "message": "quota exceeded"}}, status_code=429)
    response = api.post("/api/generate-quiz", json={"topic": "Volcanoes", "numQuestions": 1})
    assert response.status_code == 429
    assert response.json() == {"error": "quota exceeded"}


def test_fenced_output_is_sanitized(api, upstream, quiz_data):
    upstream.reply_text("```json\n" + json.dumps(quiz_data(2)) + "\n```")
    response = api.post("/api/generate-quiz", json={"topic": "Volcanoes", "numQuestions": 2})
    assert response.status_code == 200
    assert response.json() == quiz_data(2)


def test_invalid_json_is_not_leaked(api, upstream):
    upstream.reply_text("Sorry, here are some questions: Q1 ...")
    response = api.post("/api/generate-quiz", json={"topic": "Volcanoes", "numQuestions": 1})
    assert response.status_code == 500
    assert response.json() == {"error": "AI returned an invalid JSON format"}


def test_empty_response(api, upstream):
    upstream.reply({"candidates": []})
    response = api.post("/api/generate-quiz", json={"topic": "Volcanoes", "numQuestions": 1})
    assert response.status_code == 500
    assert response.json() == {"error": "AI returned an empty response"}


def test_wrong_answer_is_a_data_quality_error(api, upstream, quiz_data):
    items = quiz_data(1)
    items[0]["correctAnswer"] = "Z"
    upstream.reply_text(json.dumps(items))
    response = api.post("/api/generate-quiz", json={"topic": "Volcanoes", "numQuestions": 1})
    assert response.status_code == 500
    assert response.json()["error"].startswith("AI returned invalid quiz data")


def test_unexpected_error_is_generic(api, upstream):
    upstream.raise_error = RuntimeError("socket exploded")
    response = api.post("/api/generate-quiz", json={"topic": "Volcanoes", "numQuestions": 1})
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_root_and_health(api):
    assert api.get("/health").json() == {"status": "healthy"}
    assert api.get("/").json()["endpoints"]["generate_quiz"] == "POST /api/generate-quiz"


def test_upstream_error_with_string_body_keeps_status(api, upstream):
    upstream.reply({"error": "quota exceeded"}, status_code=429)
    response = api.post("/api/generate-quiz", json={"topic": "Volcanoes", "numQuestions": 1})
    assert response.status_code == 429
    assert response.json() == {"error": "Gemini API Error"}


def test_null_candidates_is_empty_response(api, upstream):
    upstream.reply({"candidates": None})
    response = api.post("/api/generate-quiz", json={"topic": "Volcanoes", "numQuestions": 1})
    assert response.status_code == 500
    assert response.json() == {"error": "AI returned an empty response"}
