"""SQLAlchemy database models."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, LargeBinary, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class CacheGenerationDB(Base):
    """A named cache generation. Exists even while it holds no entries."""

    __tablename__ = "cache_generations"

    name: Mapped[str] = mapped_column(String(100), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class CacheEntryDB(Base):
    """One cached asset response inside a cache generation."""

    __tablename__ = "cache_entries"
    __table_args__ = (UniqueConstraint("cache_name", "url", name="uq_cache_entry"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cache_name: Mapped[str] = mapped_column(
        String(100), ForeignKey("cache_generations.name"), nullable=False, index=True
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[int] = mapped_column(Integer, default=200)
    headers: Mapped[str] = mapped_column(Text, default="{}")  # JSON object
    body: Mapped[bytes] = mapped_column(LargeBinary, default=b"")
    response_type: Mapped[str] = mapped_column(String(20), default="basic")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
