"""Database layer for the offline asset store."""

from .database import init_db, make_engine
from .models import Base, CacheEntryDB, CacheGenerationDB

__all__ = [
    "init_db",
    "make_engine",
    "Base",
    "CacheEntryDB",
    "CacheGenerationDB",
]
