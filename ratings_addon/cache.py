"""
Two-tier rating cache.

Ratings are read from and written to a shared Redis store when one is
reachable, otherwise from an in-process map owned by the application.
Cache problems never fail a lookup; they only force a live fetch.
"""

import logging
import time
from collections.abc import Callable, Iterable
from typing import Any

from .outcome import attempt
from .scores import RATING_PROVIDERS

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "v1.0"
RATINGS_TTL_SECONDS = 24 * 60 * 60


def rating_cache_key(title_id: str, provider: str, version: str = SCHEMA_VERSION) -> str:
    return f"{title_id}_{provider}_{version}"


class MemoryStore:
    """In-process fallback map of cache key -> (value, stored_at)."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._entries: dict[str, tuple[str, float]] = {}
        self._clock = clock

    def get(self, key: str, max_age: float = RATINGS_TTL_SECONDS) -> str | None:
        cached = self._entries.get(key)
        if cached is None:
            return None
        value, stored_at = cached
        # Expired entries stay in the map; they are only ignored.
        if (self._clock() - stored_at) >= max_age:
            return None
        return value

    def set(self, key: str, value: str) -> None:
        self._entries[key] = (value, self._clock())

    def size(self) -> int:
        return len(self._entries)


class SharedStore:
    """Lazily connected Redis handle exposing only what the cache needs."""

    def __init__(self, url: str | None, client: Any = None) -> None:
        self._url = url
        self._client = client
        self.is_open = False

    async def connect(self) -> None:
        if self.is_open:
            return
        if self._client is None:
            if not self._url:
                raise RuntimeError("REDIS_URL is not configured")
            import redis.asyncio as aioredis

            self._client = aioredis.from_url(self._url, decode_responses=True)
        try:
            await self._client.ping()
        except Exception:
            self.is_open = False
            raise
        self.is_open = True
        logger.info("Connected to shared rating cache")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
        self.is_open = False

    async def get(self, key: str) -> str | None:
        return await self._client.get(key)

    async def set(self, key: str, value: str) -> None:
        await self._client.set(key, value)

    async def expire(self, key: str, seconds: int) -> None:
        await self._client.expire(key, seconds)


class RatingCache:
    def __init__(
        self,
        memory: MemoryStore,
        shared: SharedStore | None = None,
        providers: Iterable[str] = RATING_PROVIDERS,
    ) -> None:
        self.memory = memory
        self.shared = shared
        self.providers = tuple(providers)

    async def _shared_available(self) -> bool:
        if self.shared is None:
            return False
        if self.shared.is_open:
            return True
        opened = await attempt(self.shared.connect())
        if not opened.ok:
            logger.info("Shared rating cache unavailable, using in-memory cache: %s", opened.error)
            return False
        return self.shared.is_open

    async def _read_shared(self, title_id: str) -> dict[str, str]:
        ratings: dict[str, str] = {}
        for provider in self.providers:
            value = await self.shared.get(rating_cache_key(title_id, provider))
            if value:
                ratings[provider] = value
        return ratings

    async def _write_shared(self, title_id: str, ratings: dict[str, str]) -> None:
        for provider, value in ratings.items():
            key = rating_cache_key(title_id, provider)
            await self.shared.set(key, value)
            await self.shared.expire(key, RATINGS_TTL_SECONDS)

    async def get(self, title_id: str) -> dict[str, str]:
        if await self._shared_available():
            result = await attempt(self._read_shared(title_id))
            if not result.ok:
                logger.error("Error reading shared rating cache for %s: %s", title_id, result.error)
                self.shared.is_open = False
            elif result.value:
                logger.info("Retrieved ratings from shared cache for %s", title_id)
                return result.value

        ratings: dict[str, str] = {}
        for provider in self.providers:
            value = self.memory.get(rating_cache_key(title_id, provider))
            if value:
                ratings[provider] = value
        if ratings:
            logger.info("Retrieved ratings from in-memory cache for %s", title_id)
        return ratings

    async def put(self, title_id: str, ratings: dict[str, str]) -> None:
        if await self._shared_available():
            result = await attempt(self._write_shared(title_id, ratings))
            if result.ok:
                logger.info("Saved ratings to shared cache for %s", title_id)
                return
            logger.error("Error saving to shared rating cache for %s: %s", title_id, result.error)
            self.shared.is_open = False

        for provider, value in ratings.items():
            self.memory.set(rating_cache_key(title_id, provider), value)
        logger.info("Saved ratings to in-memory cache for %s", title_id)
