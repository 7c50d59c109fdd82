"""Cache store clients.

Services only see the CacheClient interface, so the Redis-backed client
can be swapped for the in-process or disabled variant (tests, local
development, or caching turned off).

Each client also keeps a generation counter for its namespace. Writers bump
it before deleting keys, and a read populates its key only if the counter
still holds the value seen before the database was queried.

Example:
    cache = create_cache(get_settings())
    generation = await cache.generation()
    raw = await cache.get("listing:42")
    await cache.set_if_generation("listing:42", payload, 600, generation)
    await cache.bump_generation()
    await cache.clear()  # only keys under the configured namespace
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import WatchError

from ..config import Settings

logger = logging.getLogger(__name__)

CLEAR_BATCH_SIZE = 500


class CacheClient(ABC):
    """Key-value store holding serialized query results.

    Every key is stored under ``<namespace>:<key>``. ``clear`` removes only
    the keys of that namespace and leaves the generation counter alone.
    """

    name: str

    def __init__(self, namespace: str = "propertyhub"):
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}" if self.namespace else key

    @property
    def _generation_key(self) -> str:
        # Outside the "<namespace>:" prefix, so clear() never resets it
        return f"{self.namespace}.generation" if self.namespace else "__generation__"

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if absent or expired."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int) -> None:
        """Store a value that expires after ``ttl`` seconds."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key; a missing key is not an error."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every key in the namespace."""

    @abstractmethod
    async def generation(self) -> int:
        """Current value of the namespace's invalidation counter."""

    @abstractmethod
    async def bump_generation(self) -> int:
        """Advance the invalidation counter and return the new value."""

    @abstractmethod
    async def set_if_generation(self, key: str, value: str, ttl: int, generation: int) -> bool:
        """Store a value only while the counter still equals ``generation``.

        Returns False when an invalidation happened in between.
        """

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        pass


class RedisCache(CacheClient):
    """Redis-backed cache using ``SET ... EX`` for expiry.

    Conditional writes run under ``WATCH`` on the generation key, so a bump
    from any worker between the check and the write aborts the write.
    """

    name = "redis"

    def __init__(self, client: redis.Redis, namespace: str = "propertyhub"):
        super().__init__(namespace)
        self.client = client

    @classmethod
    def from_url(cls, url: str, namespace: str = "propertyhub") -> "RedisCache":
        return cls(redis.from_url(url, decode_responses=True), namespace=namespace)

    async def get(self, key: str) -> Optional[str]:
        return await self.client.get(self._key(key))

    async def set(self, key: str, value: str, ttl: int) -> None:
        await self.client.set(self._key(key), value, ex=ttl)

    async def delete(self, key: str) -> None:
        await self.client.delete(self._key(key))

    async def clear(self) -> None:
        pattern = f"{self.namespace}:*" if self.namespace else "*"
        batch: list[str] = []
        async for key in self.client.scan_iter(match=pattern, count=CLEAR_BATCH_SIZE):
            if key == self._generation_key:
                continue
            batch.append(key)
            if len(batch) >= CLEAR_BATCH_SIZE:
                await self.client.delete(*batch)
                batch = []
        if batch:
            await self.client.delete(*batch)

    async def generation(self) -> int:
        return int(await self.client.get(self._generation_key) or 0)

    async def bump_generation(self) -> int:
        return await self.client.incr(self._generation_key)

    async def set_if_generation(self, key: str, value: str, ttl: int, generation: int) -> bool:
        async with self.client.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(self._generation_key)
                current = int(await pipe.get(self._generation_key) or 0)
                if current != generation:
                    await pipe.unwatch()
                    return False
                pipe.multi()
                pipe.set(self._key(key), value, ex=ttl)
                await pipe.execute()
            except WatchError:
                return False
        return True

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    async def close(self) -> None:
        await self.client.aclose()


class MemoryCache(CacheClient):
    """In-process cache with per-key expiry. Not shared between workers."""

    name = "memory"

    def __init__(self, namespace: str = "propertyhub"):
        super().__init__(namespace)
        self._entries: dict[str, tuple[str, float]] = {}
        self._generation = 0

    def _live(self, full_key: str) -> Optional[str]:
        entry = self._entries.get(full_key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= time.monotonic():
            del self._entries[full_key]
            return None
        return value

    async def get(self, key: str) -> Optional[str]:
        return self._live(self._key(key))

    async def set(self, key: str, value: str, ttl: int) -> None:
        self._entries[self._key(key)] = (value, time.monotonic() + ttl)

    async def delete(self, key: str) -> None:
        self._entries.pop(self._key(key), None)

    async def clear(self) -> None:
        prefix = self._key("")
        for full_key in [k for k in self._entries if k.startswith(prefix)]:
            del self._entries[full_key]

    async def generation(self) -> int:
        return self._generation

    async def bump_generation(self) -> int:
        self._generation += 1
        return self._generation

    async def set_if_generation(self, key: str, value: str, ttl: int, generation: int) -> bool:
        # No await between the check and the write
        if self._generation != generation:
            return False
        self._entries[self._key(key)] = (value, time.monotonic() + ttl)
        return True

    def keys(self) -> list[str]:
        """Unexpired keys, without the namespace prefix."""
        prefix = self._key("")
        return [
            k[len(prefix):]
            for k in list(self._entries)
            if k.startswith(prefix) and self._live(k) is not None
        ]


class NullCache(CacheClient):
    """Caching disabled: every read misses and writes are dropped."""

    name = "none"

    async def get(self, key: str) -> Optional[str]:
        return None

    async def set(self, key: str, value: str, ttl: int) -> None:
        pass

    async def delete(self, key: str) -> None:
        pass

    async def clear(self) -> None:
        pass

    async def generation(self) -> int:
        return 0

    async def bump_generation(self) -> int:
        return 0

    async def set_if_generation(self, key: str, value: str, ttl: int, generation: int) -> bool:
        return False


def create_cache(settings: Settings) -> CacheClient:
    """Pick the cache client for the given settings."""
    if not settings.cache_enabled:
        logger.info("Response cache disabled")
        return NullCache(settings.cache_namespace)
    if settings.redis_url:
        logger.info("Using Redis response cache")
        return RedisCache.from_url(settings.redis_url, namespace=settings.cache_namespace)
    logger.warning("REDIS_URL not set, using in-process response cache")
    return MemoryCache(settings.cache_namespace)
