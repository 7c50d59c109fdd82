"""Look-aside caching and write invalidation.

The cache is never authoritative. Store errors on any path are logged and
absorbed here: reads fall back to the database and failed writes or
deletes leave the request unaffected.

Writers bump the namespace generation before deleting anything. A read
captures the generation before querying the database and populates its key
only if no bump happened since, so a result computed from rows that a
concurrent write has replaced is returned once but never cached.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, Optional

from pydantic_core import to_jsonable_python

from .clients import CacheClient
from .keys import ALL_LISTINGS, listing_key, property_key, seller_listings_key

logger = logging.getLogger(__name__)


def to_cacheable(value: Any) -> Any:
    """JSON-compatible form of a result, with camelCase aliases."""
    return to_jsonable_python(value, by_alias=True)


async def read_through(
    cache: CacheClient,
    key: str,
    ttl: int,
    compute: Callable[[], Awaitable[Any]],
) -> Any:
    """Return the cached result for ``key`` or compute and store it.

    Hits and misses return the same JSON-compatible data. Exceptions from
    ``compute`` propagate and nothing is stored. The result is not stored
    when an invalidation ran while ``compute`` was in flight.
    """
    generation: Optional[int] = None
    cached: Optional[str] = None
    try:
        generation = await cache.generation()
        cached = await cache.get(key)
    except Exception as e:
        logger.warning(f"Cache read failed for {key}, falling back to database: {e}")

    if cached is not None:
        try:
            value = json.loads(cached)
        except ValueError:
            logger.warning(f"Discarding undecodable cache entry {key}")
        else:
            logger.debug(f"Cache hit: {key}")
            return value

    logger.debug(f"Cache miss: {key}")
    value = to_cacheable(await compute())

    if generation is None:
        return value
    try:
        stored = await cache.set_if_generation(key, json.dumps(value), ttl, generation)
    except Exception as e:
        logger.warning(f"Cache write failed for {key}: {e}")
    else:
        if not stored:
            logger.debug(f"Skipped caching {key}: invalidated during read")
    return value


async def _bump(cache: CacheClient) -> bool:
    try:
        await cache.bump_generation()
    except Exception as e:
        logger.warning(f"Cache generation bump failed: {e}")
        return False
    return True


async def invalidate(cache: CacheClient, *keys: str) -> int:
    """Delete every key independently. Returns how many deletions failed."""
    await _bump(cache)
    unique = list(dict.fromkeys(keys))
    results = await asyncio.gather(
        *(cache.delete(key) for key in unique), return_exceptions=True
    )
    failures = 0
    for key, result in zip(unique, results):
        if isinstance(result, Exception):
            failures += 1
            logger.warning(f"Cache delete failed for {key}: {result}")
    return failures


async def flush(cache: CacheClient) -> bool:
    """Clear the whole cache namespace. Returns False if the clear failed."""
    await _bump(cache)
    try:
        await cache.clear()
    except Exception as e:
        logger.warning(f"Cache flush failed: {e}")
        return False
    logger.info("Cache namespace flushed")
    return True


async def invalidate_listing_write(
    cache: CacheClient,
    seller_id: Any,
    listing_id: Any = None,
) -> None:
    """Drop every key that may hold a written listing.

    Covers ``allListings`` and the seller's collection, plus the listing's
    own key on update/delete.
    """
    keys = [ALL_LISTINGS, seller_listings_key(seller_id)]
    if listing_id is not None:
        keys.append(listing_key(listing_id))
    await invalidate(cache, *keys)


async def invalidate_property_write(cache: CacheClient, property_ids: Iterable[Any]) -> None:
    """Drop cached data for written properties.

    Nearby results are keyed by arbitrary coordinates and cannot be
    enumerated, so the namespace is flushed as well as each
    ``property:<id>`` key.
    """
    keys = [property_key(pid) for pid in property_ids]
    await asyncio.gather(invalidate(cache, *keys), flush(cache))
