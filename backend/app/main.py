"""Quiz Generator - FastAPI Application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.routers import quiz_router
from app.services.quiz_generator import QuizGenerationError

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(f"Starting {settings.app_name} (model: {settings.gemini_model})")
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; quiz generation will fail until it is configured.")
    yield
    logger.info("Shutting down...")


app = FastAPI(
    title=settings.app_name,
    description="Generates multiple-choice quizzes on any topic with Gemini",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Every error body has the shape {"error": "<message>"}
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    problems = []
    for error in exc.errors():
        loc = [str(part) for part in error["loc"] if part != "body"]
        field = ".".join(loc) or "body"
        if error["type"] == "missing":
            problems.append(f"Missing required field: {field}")
        else:
            problems.append(f"Invalid field {field}: {error['msg']}")
    return JSONResponse(status_code=400, content={"error": "; ".join(problems)})


@app.exception_handler(QuizGenerationError)
async def quiz_generation_exception_handler(request: Request, exc: QuizGenerationError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


# Include routers
app.include_router(quiz_router)

# Static front-end shell
if settings.static_dir.exists():
    app.mount("/app", StaticFiles(directory=str(settings.static_dir), html=True), name="app")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": settings.app_name,
        "version": "0.1.0",
        "endpoints": {"generate_quiz": "POST /api/generate-quiz"},
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
