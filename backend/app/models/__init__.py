"""Pydantic models for the Quiz Generator application."""

from .quiz import (
    GeminiCandidate,
    GeminiContent,
    GeminiError,
    GeminiPart,
    GenerateContentResponse,
    QuizItem,
    QuizRequest,
    QuizSet,
)

__all__ = [
    "GeminiCandidate",
    "GeminiContent",
    "GeminiError",
    "GeminiPart",
    "GenerateContentResponse",
    "QuizItem",
    "QuizRequest",
    "QuizSet",
]
