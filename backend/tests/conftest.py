import json
import os
import sys
from pathlib import Path

import httpx
import pytest

# Make `app` importable and keep the real key out of the test run
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))
os.environ["GEMINI_API_KEY"] = "test-key"
os.environ["CACHE_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

from app.services.quiz_generator import GeminiClient  # noqa: E402


def make_quiz(n=2):
    return [
        {
            "questionText": f"Question {i}?",
            "options": ["A", "B", "C", "D"],
            "correctAnswer": "B",
            "explanation": f"B is right for question {i}.",
        }
        for i in range(1, n + 1)
    ]


def gemini_reply(text):
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


class FakeUpstream:
    """Records outbound requests and answers with a canned reply."""

    def __init__(self):
        self.requests = []
        self.status_code = 200
        self.body = gemini_reply(json.dumps(make_quiz()))
        self.raise_error = None

    def reply(self, body, status_code=200):
        self.body = body
        self.status_code = status_code

    def reply_text(self, text):
        self.reply(gemini_reply(text))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_error is not None:
            raise self.raise_error
        if isinstance(self.body, (bytes, str)):
            return httpx.Response(self.status_code, content=self.body)
        return httpx.Response(self.status_code, json=self.body)

    def client(self, **kwargs) -> GeminiClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return GeminiClient(api_key="test-key", http_client=http_client, **kwargs)


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def quiz_data():
    return make_quiz
