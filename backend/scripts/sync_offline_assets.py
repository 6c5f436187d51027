#!/usr/bin/env python3
"""Populate the offline asset store and drop stale cache generations.

Runs install followed by activate against the SQL-backed store, the same
order the front-end runtime uses when a new cache version ships.

Usage:
    python scripts/sync_offline_assets.py
    python scripts/sync_offline_assets.py --cache-name quiz-generator-v2 --scope https://quiz.example.com/app/
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.ext.asyncio import async_sessionmaker

from app.config import settings
from app.db import init_db, make_engine
from app.services.offline_cache import (
    CacheConfig,
    HttpFetcher,
    OfflineAssetCache,
    SQLCacheStorage,
)


async def sync(cache_name: str | None, scope: str | None, database_url: str) -> int:
    config = CacheConfig.from_settings(settings)
    if cache_name:
        config = replace(config, cache_name=cache_name)
    if scope:
        config = replace(config, scope=scope)

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    engine = make_engine(database_url)
    try:
        await init_db(engine)
        storage = SQLCacheStorage(async_sessionmaker(engine, expire_on_commit=False))
        cache = OfflineAssetCache(config, storage, HttpFetcher(config.scope))

        installed = await cache.install()
        deleted = await cache.activate()
    finally:
        await engine.dispose()

    print(f"Cache generation: {config.cache_name}")
    print(f"Installed: {'yes' if installed else 'no (see log)'}")
    print(f"Deleted generations: {', '.join(deleted) or 'none'}")
    return 0 if installed else 1


def main() -> int:
    parser = argparse.ArgumentParser(description="Sync the offline asset cache")
    parser.add_argument("--cache-name", help=f"Cache generation (default: {settings.cache_name})")
    parser.add_argument("--scope", help=f"Base URL for relative assets (default: {settings.cache_scope})")
    parser.add_argument(
        "--database-url",
        default=settings.cache_database_url,
        help="SQLAlchemy async database URL",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    return asyncio.run(sync(args.cache_name, args.scope, args.database_url))


if __name__ == "__main__":
    sys.exit(main())
