"""Business logic services."""

from .offline_cache import (
    CacheConfig,
    CachedResponse,
    HttpFetcher,
    MemoryCacheStorage,
    OfflineAssetCache,
    SQLCacheStorage,
)
from .quiz_generator import GeminiClient, QuizGenerationError, get_quiz_client

__all__ = [
    "CacheConfig",
    "CachedResponse",
    "HttpFetcher",
    "MemoryCacheStorage",
    "OfflineAssetCache",
    "SQLCacheStorage",
    "GeminiClient",
    "QuizGenerationError",
    "get_quiz_client",
]
