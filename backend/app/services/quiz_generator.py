"""Quiz generation through the Gemini generateContent API."""

import json
import logging
import re
from typing import Any

import httpx
from pydantic import ValidationError

from app.config import settings
from app.models.quiz import GenerateContentResponse, QuizItem, QuizSet

logger = logging.getLogger(__name__)


# --- Errors ---
class QuizGenerationError(Exception):
    """Failure that maps onto an HTTP error response."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(QuizGenerationError):
    def __init__(self, message: str = "Server configuration error: API key missing."):
        super().__init__(message, 500)


class UpstreamAPIError(QuizGenerationError):
    """Non-2xx reply from the generation API, forwarded as-is."""


class EmptyResponseError(QuizGenerationError):
    def __init__(self, message: str = "AI returned an empty response"):
        super().__init__(message, 500)


class InvalidFormatError(QuizGenerationError):
    def __init__(self, message: str = "AI returned an invalid JSON format"):
        super().__init__(message, 500)


class InvalidQuizDataError(QuizGenerationError):
    def __init__(self, reason: str):
        super().__init__(f"AI returned invalid quiz data: {reason}", 500)


# --- Prompt and payload ---
QUIZ_FIELDS = ["questionText", "options", "correctAnswer", "explanation"]

QUIZ_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "questionText": {"type": "STRING"},
            "options": {"type": "ARRAY", "items": {"type": "STRING"}},
            "correctAnswer": {"type": "STRING"},
            "explanation": {"type": "STRING"},
        },
        "required": QUIZ_FIELDS,
        "propertyOrdering": QUIZ_FIELDS,
    },
}


def build_prompt(topic: str, num_questions: int) -> str:
    return (
        f'Generate exactly {num_questions} multiple-choice questions about "{topic}".\n'
        f"Return ONLY a JSON array of {num_questions} objects. Each object MUST have:\n"
        f'- "questionText": the question as a string\n'
        f'- "options": an array of exactly 4 distinct strings\n'
        f'- "correctAnswer": a string copied exactly from one of the options\n'
        f'- "explanation": a short string explaining why the answer is correct\n'
        f"Do not include any prose, comments or markdown code fences around the array."
    )


def build_payload(prompt: str, strict: bool = True) -> dict[str, Any]:
    generation_config: dict[str, Any] = {"responseMimeType": "application/json"}
    if strict:
        generation_config["responseSchema"] = QUIZ_RESPONSE_SCHEMA
    return {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": generation_config,
    }


# --- Sanitization ---
_FENCE_OPEN = re.compile(r"^```[a-zA-Z0-9_-]*[ \t]*\n?")
_FENCE_CLOSE = re.compile(r"\n?```\s*$")


def strip_code_fences(text: str) -> str:
    """Remove a markdown code fence wrapped around the model output."""
    content = text.strip()
    if content.startswith("```"):
        content = _FENCE_OPEN.sub("", content, count=1)
        content = _FENCE_CLOSE.sub("", content, count=1)
    return content.strip()


def extract_json(text: str) -> Any:
    """Parse model output as JSON, falling back to the outermost array/object."""
    content = strip_code_fences(text)
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        pass

    pairs = [("[", "]"), ("{", "}")]
    # Outermost value first: whichever bracket opens earliest
    pairs.sort(key=lambda pair: content.find(pair[0]) if pair[0] in content else len(content))
    for open_char, close_char in pairs:
        start = content.find(open_char)
        end = content.rfind(close_char)
        if start != -1 and end > start:
            try:
                return json.loads(content[start : end + 1])
            except json.JSONDecodeError:
                continue

    raise InvalidFormatError()


def validate_quiz(data: Any, expected: int | None = None) -> list[QuizItem]:
    """Check decoded output against the QuizItem contract."""
    if isinstance(data, dict) and "questions" in data:
        data = data["questions"]
    if not isinstance(data, list):
        raise InvalidQuizDataError("expected a JSON array of questions")

    try:
        items = QuizSet.model_validate(data).root
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise InvalidQuizDataError(f"{location}: {first['msg']}") from e

    if expected is not None and len(items) != expected:
        logger.warning(f"Requested {expected} questions, model returned {len(items)}")
    return items


# --- Client ---
class GeminiClient:
    """Single-shot client for the generateContent endpoint."""

    def __init__(
        self,
        api_key: str,
        api_base: str = "https://generativelanguage.googleapis.com/v1beta",
        model: str = "gemini-1.5-flash",
        strict_schema: bool = True,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.api_base = api_base.rstrip("/")
        self.model = model
        self.strict_schema = strict_schema
        self.timeout = timeout
        self._http_client = http_client

    @property
    def endpoint(self) -> str:
        return f"{self.api_base}/models/{self.model}:generateContent"

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        params = {"key": self.api_key}
        if self._http_client is not None:
            return await self._http_client.post(
                self.endpoint, params=params, json=payload, timeout=self.timeout
            )
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.endpoint, params=params, json=payload)

    async def generate_quiz(self, topic: str, num_questions: int) -> list[QuizItem]:
        payload = build_payload(build_prompt(topic, num_questions), self.strict_schema)
        response = await self._post(payload)

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        try:
            result = GenerateContentResponse.model_validate(body)
        except ValidationError:
            logger.warning(f"Unexpected Gemini reply shape ({response.status_code}): {body}")
            result = GenerateContentResponse()

        if not response.is_success:
            logger.error(f"Gemini API Error ({response.status_code}): {body}")
            message = (result.error.message if result.error else None) or "Gemini API Error"
            raise UpstreamAPIError(message, response.status_code)

        content = result.first_text()
        if not content or not content.strip():
            logger.error(f"Gemini returned no content: {body}")
            raise EmptyResponseError()

        try:
            data = extract_json(content)
        except InvalidFormatError:
            logger.error(f"Gemini returned unparseable text ({len(content)} chars)")
            raise

        return validate_quiz(data, expected=num_questions)


def get_quiz_client() -> GeminiClient:
    """FastAPI dependency building a client from settings."""
    if not settings.gemini_api_key:
        logger.error("GEMINI_API_KEY is not configured")
        raise ConfigurationError()
    return GeminiClient(
        api_key=settings.gemini_api_key,
        api_base=settings.gemini_api_base,
        model=settings.gemini_model,
        strict_schema=settings.gemini_strict_schema,
        timeout=settings.gemini_timeout,
    )
