"""Application configuration settings."""

from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = "Quiz Generator"
    debug: bool = False
    log_level: str = "INFO"

    # Paths
    base_dir: Path = Path(__file__).parent.parent
    data_dir: Path = base_dir / "data"
    static_dir: Path = base_dir / "public"

    # Upstream generation API
    gemini_api_key: str | None = None
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model: str = "gemini-1.5-flash"
    gemini_strict_schema: bool = True
    gemini_timeout: float = 60.0  # seconds

    # Quiz settings
    max_questions: int = 50

    cors_origins: list[str] = ["*"]

    # Offline asset cache
    cache_name: str = "quiz-generator-v1"
    cache_scope: str = "http://localhost:8000/app/"
    cache_database_url: str = f"sqlite+aiosqlite:///{data_dir / 'offline_cache.db'}"
    offline_assets: list[str] = [
        "./",
        "./index.html",
        "./manifest.json",
        "./icons/icon-72x72.png",
        "./icons/icon-96x96.png",
        "./icons/icon-128x128.png",
        "./icons/icon-144x144.png",
        "./icons/icon-152x152.png",
        "./icons/icon-192x192.png",
        "./icons/icon-384x384.png",
        "./icons/icon-512x512.png",
        # CDN libraries used by the front-end shell
        "https://cdn.tailwindcss.com",
        "https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600;700&display=swap",
        "https://cdnjs.cloudflare.com/ajax/libs/font-awesome/6.4.0/css/all.min.css",
        "https://cdnjs.cloudflare.com/ajax/libs/html2canvas/1.4.1/html2canvas.min.js",
        "https://cdnjs.cloudflare.com/ajax/libs/jspdf/2.5.1/jspdf.umd.min.js",
    ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
