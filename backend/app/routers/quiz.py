"""Quiz generation endpoint."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from app.models.quiz import QuizItem, QuizRequest
from app.services.quiz_generator import GeminiClient, QuizGenerationError, get_quiz_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["quiz"])


@router.post("/generate-quiz", response_model=list[QuizItem])
async def generate_quiz(
    req: QuizRequest,
    client: GeminiClient = Depends(get_quiz_client),
):
    """
    Generates `numQuestions` multiple-choice questions about `topic`.

    The client dependency is resolved before the body is validated, so a
    server without an API key answers 500 even for incomplete requests.
    """
    try:
        return await client.generate_quiz(req.topic, req.numQuestions)
    except QuizGenerationError:
        raise
    except Exception as e:
        logger.exception(f"Server Error: {e}")
        raise HTTPException(status_code=500, detail="Internal server error") from e
