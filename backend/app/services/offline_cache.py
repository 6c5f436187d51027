"""Offline asset cache for the static front-end shell.

A read-through cache over named, versioned stores:

- install(): populate the current generation with the asset manifest
- fetch(): serve from the current generation, else fetch and populate
- activate(): delete every generation except the current one

Storage backends implement `CacheStorage` / `CacheStore`. `MemoryCacheStorage`
keeps everything in-process; `SQLCacheStorage` persists through SQLAlchemy.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from urllib.parse import urljoin, urlsplit

import httpx
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.models import CacheEntryDB, CacheGenerationDB

logger = logging.getLogger(__name__)


class CacheError(Exception):
    """Raised when the asset manifest cannot be stored."""


def origin_of(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


@dataclass(frozen=True)
class CacheConfig:
    """Immutable cache settings: generation name, scope and asset manifest."""

    cache_name: str
    scope: str
    assets: tuple[str, ...] = ()

    @classmethod
    def from_settings(cls, settings) -> "CacheConfig":
        return cls(
            cache_name=settings.cache_name,
            scope=settings.cache_scope,
            assets=tuple(settings.offline_assets),
        )

    @property
    def origin(self) -> str:
        return origin_of(self.scope)

    def resolve(self, url: str) -> str:
        """Absolute URL of `url` relative to the scope."""
        return urljoin(self.scope, url)

    def urls(self) -> list[str]:
        return [self.resolve(asset) for asset in self.assets]


@dataclass
class CachedResponse:
    """A stored (or freshly fetched) asset response."""

    url: str
    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    type: str = "basic"  # "basic" same-origin, "cors" cross-origin

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def clone(self) -> "CachedResponse":
        return replace(self, headers=dict(self.headers))


Fetcher = Callable[[str], Awaitable[CachedResponse]]


# --- Storage interface ---
class CacheStore(ABC):
    """A single named cache generation, keyed by request URL."""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    async def match(self, url: str) -> CachedResponse | None:
        pass

    @abstractmethod
    async def put(self, url: str, response: CachedResponse) -> None:
        pass

    @abstractmethod
    async def keys(self) -> list[str]:
        pass

    @abstractmethod
    async def delete(self, url: str) -> bool:
        pass

    async def put_all(self, entries: list[tuple[str, CachedResponse]]) -> None:
        for url, response in entries:
            await self.put(url, response)


class CacheStorage(ABC):
    """Collection of named cache generations."""

    @abstractmethod
    async def open(self, name: str) -> CacheStore:
        """Return the store called `name`, creating it if needed."""

    @abstractmethod
    async def has(self, name: str) -> bool:
        pass

    @abstractmethod
    async def keys(self) -> list[str]:
        pass

    @abstractmethod
    async def delete(self, name: str) -> bool:
        pass

    async def match(self, url: str) -> CachedResponse | None:
        """First match for `url` across every generation."""
        for name in await self.keys():
            store = await self.open(name)
            response = await store.match(url)
            if response is not None:
                return response
        return None


# --- In-memory backend ---
class MemoryCacheStore(CacheStore):
    def __init__(self, name: str, entries: dict[str, CachedResponse]):
        super().__init__(name)
        self._entries = entries

    async def match(self, url: str) -> CachedResponse | None:
        response = self._entries.get(url)
        return response.clone() if response else None

    async def put(self, url: str, response: CachedResponse) -> None:
        self._entries[url] = response.clone()

    async def keys(self) -> list[str]:
        return list(self._entries)

    async def delete(self, url: str) -> bool:
        return self._entries.pop(url, None) is not None


class MemoryCacheStorage(CacheStorage):
    def __init__(self):
        self._caches: dict[str, dict[str, CachedResponse]] = {}

    async def open(self, name: str) -> CacheStore:
        return MemoryCacheStore(name, self._caches.setdefault(name, {}))

    async def has(self, name: str) -> bool:
        return name in self._caches

    async def keys(self) -> list[str]:
        return list(self._caches)

    async def delete(self, name: str) -> bool:
        return self._caches.pop(name, None) is not None


# --- SQLAlchemy backend ---
class SQLCacheStore(CacheStore):
    def __init__(self, name: str, session_factory: async_sessionmaker[AsyncSession]):
        super().__init__(name)
        self.session_factory = session_factory

    @staticmethod
    def _db_to_response(row: CacheEntryDB) -> CachedResponse:
        return CachedResponse(
            url=row.url,
            status=row.status,
            headers=json.loads(row.headers),
            body=row.body,
            type=row.response_type,
        )

    async def _replace(self, session: AsyncSession, url: str, response: CachedResponse) -> None:
        await session.execute(
            delete(CacheEntryDB).where(
                CacheEntryDB.cache_name == self.name, CacheEntryDB.url == url
            )
        )
        session.add(
            CacheEntryDB(
                cache_name=self.name,
                url=url,
                status=response.status,
                headers=json.dumps(response.headers),
                body=response.body,
                response_type=response.type,
            )
        )

    async def match(self, url: str) -> CachedResponse | None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(CacheEntryDB).where(
                    CacheEntryDB.cache_name == self.name, CacheEntryDB.url == url
                )
            )
            row = result.scalar_one_or_none()
            return self._db_to_response(row) if row else None

    async def put(self, url: str, response: CachedResponse) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                await self._replace(session, url, response)

    async def put_all(self, entries: list[tuple[str, CachedResponse]]) -> None:
        # Single transaction: either every asset lands or none does.
        async with self.session_factory() as session:
            async with session.begin():
                for url, response in entries:
                    await self._replace(session, url, response)

    async def keys(self) -> list[str]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(CacheEntryDB.url)
                .where(CacheEntryDB.cache_name == self.name)
                .order_by(CacheEntryDB.id)
            )
            return list(result.scalars().all())

    async def delete(self, url: str) -> bool:
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    delete(CacheEntryDB).where(
                        CacheEntryDB.cache_name == self.name, CacheEntryDB.url == url
                    )
                )
            return result.rowcount > 0


class SQLCacheStorage(CacheStorage):
    """Cache generations persisted in the `cache_generations`/`cache_entries` tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def open(self, name: str) -> CacheStore:
        async with self.session_factory() as session:
            async with session.begin():
                if await session.get(CacheGenerationDB, name) is None:
                    session.add(CacheGenerationDB(name=name))
        return SQLCacheStore(name, self.session_factory)

    async def has(self, name: str) -> bool:
        async with self.session_factory() as session:
            return await session.get(CacheGenerationDB, name) is not None

    async def keys(self) -> list[str]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(CacheGenerationDB.name).order_by(CacheGenerationDB.created_at, CacheGenerationDB.name)
            )
            return list(result.scalars().all())

    async def delete(self, name: str) -> bool:
        async with self.session_factory() as session:
            async with session.begin():
                await session.execute(delete(CacheEntryDB).where(CacheEntryDB.cache_name == name))
                result = await session.execute(
                    delete(CacheGenerationDB).where(CacheGenerationDB.name == name)
                )
            return result.rowcount > 0


# --- Network ---
class HttpFetcher:
    """Fetch assets over HTTP, tagging same-origin responses as "basic"."""

    TIMEOUT: float = 30.0
    DROPPED_HEADERS = frozenset({"content-encoding", "content-length", "transfer-encoding"})

    def __init__(
        self,
        scope: str,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.origin = origin_of(scope)
        self.timeout = timeout or self.TIMEOUT
        self._http_client = http_client

    async def _get(self, url: str) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.get(url, follow_redirects=True)
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            return await client.get(url)

    async def __call__(self, url: str) -> CachedResponse:
        response = await self._get(url)
        # `content` is already decoded, so the transfer headers no longer describe it
        headers = {
            name: value
            for name, value in response.headers.items()
            if name.lower() not in self.DROPPED_HEADERS
        }
        return CachedResponse(
            url=url,
            status=response.status_code,
            headers=headers,
            body=response.content,
            type="basic" if origin_of(url) == self.origin else "cors",
        )


# --- Lifecycle ---
class OfflineAssetCache:
    """Install / fetch / activate lifecycle over a `CacheStorage`."""

    def __init__(self, config: CacheConfig, storage: CacheStorage, fetcher: Fetcher):
        self.config = config
        self.storage = storage
        self.fetcher = fetcher

    async def install(self) -> bool:
        """Populate the current generation with the manifest.

        Returns False (after logging) when any asset could not be stored;
        installation itself is not aborted.
        """
        logger.info(f"[offline cache] Installing {self.config.cache_name}...")
        urls = self.config.urls()
        try:
            store = await self.storage.open(self.config.cache_name)
            responses = await asyncio.gather(
                *(self.fetcher(url) for url in urls), return_exceptions=True
            )
            failed = [
                url
                for url, response in zip(urls, responses)
                if isinstance(response, BaseException) or not response.ok
            ]
            if failed:
                raise CacheError(f"Request failed for {', '.join(failed)}")
            await store.put_all(list(zip(urls, responses)))
        except Exception as e:
            logger.error(f"[offline cache] Caching failed: {e}")
            return False

        logger.info(f"[offline cache] Cached app shell ({len(urls)} assets)")
        return True

    async def fetch(self, url: str) -> CachedResponse:
        """Serve `url` from the current generation, populating it on a miss."""
        key = self.config.resolve(url)
        try:
            store = await self.storage.open(self.config.cache_name)
            cached = await store.match(key)
            if cached is not None:
                return cached

            response = await self.fetcher(key)
            if response.status != 200 or response.type != "basic":
                return response
        except Exception as e:
            logger.error(f"[offline cache] Fetch failed for {key}: {e}")
            raise

        try:
            await store.put(key, response.clone())
        except Exception as e:
            logger.error(f"[offline cache] Could not cache {key}: {e}")
        return response

    async def activate(self) -> list[str]:
        """Delete every generation other than the current one."""
        logger.info(f"[offline cache] Activating {self.config.cache_name}...")
        deleted = []
        for name in await self.storage.keys():
            if name != self.config.cache_name:
                logger.info(f"[offline cache] Deleting old cache: {name}")
                await self.storage.delete(name)
                deleted.append(name)
        return deleted
