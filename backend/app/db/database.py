"""Async engine factory and schema setup."""

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from app.config import settings

from .models import Base


def make_engine(database_url: str | None = None) -> AsyncEngine:
    return create_async_engine(database_url or settings.cache_database_url, echo=settings.debug)


async def init_db(engine: AsyncEngine) -> None:
    """Create tables if they do not exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
