"""API routers for the Quiz Generator application."""

from .quiz import router as quiz_router

__all__ = [
    "quiz_router",
]
