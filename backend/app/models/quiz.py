"""Quiz-related Pydantic models."""

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator, model_validator

from app.config import settings


class QuizRequest(BaseModel):
    """Inbound request for a generated quiz."""

    topic: str = Field(description="Subject the questions should cover")
    numQuestions: int = Field(ge=1, description="Number of questions to generate")

    @field_validator("topic")
    @classmethod
    def topic_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("topic must not be empty")
        return value

    @field_validator("numQuestions")
    @classmethod
    def within_limit(cls, value: int) -> int:
        if value > settings.max_questions:
            raise ValueError(f"numQuestions must be at most {settings.max_questions}")
        return value

    model_config = ConfigDict(
        json_schema_extra={"example": {"topic": "The Solar System", "numQuestions": 5}}
    )


class QuizItem(BaseModel):
    """A single multiple-choice question."""

    questionText: str
    options: list[str] = Field(min_length=4, max_length=4)
    correctAnswer: str
    explanation: str

    @model_validator(mode="after")
    def check_answer(self) -> "QuizItem":
        if len(set(self.options)) != len(self.options):
            raise ValueError("options must be distinct")
        if self.correctAnswer not in self.options:
            raise ValueError("correctAnswer must be one of the options")
        return self


class QuizSet(RootModel[list[QuizItem]]):
    """Ordered list of quiz items returned to the client."""


# Upstream reply shapes. Every field is optional: the generation API omits
# candidates on safety blocks and returns only `error` on failures.


class GeminiPart(BaseModel):
    model_config = ConfigDict(extra="ignore")

    text: str | None = None


class GeminiContent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: str | None = None
    parts: list[GeminiPart] = Field(default_factory=list)


class GeminiCandidate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: GeminiContent | None = None
    finishReason: str | None = None


class GeminiError(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: int | None = None
    message: str | None = None
    status: str | None = None


class GenerateContentResponse(BaseModel):
    """Decoded body of a generateContent call."""

    model_config = ConfigDict(extra="ignore")

    candidates: list[GeminiCandidate] = Field(default_factory=list)
    error: GeminiError | None = None

    def first_text(self) -> str | None:
        """Text of the first part of the first candidate, if any."""
        if not self.candidates:
            return None
        content = self.candidates[0].content
        if content is None or not content.parts:
            return None
        return content.parts[0].text
