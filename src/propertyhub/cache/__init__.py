"""Response cache: key derivation, store clients and invalidation policy."""

from .clients import CacheClient, MemoryCache, NullCache, RedisCache, create_cache
from .keys import (
    ALL_LISTINGS,
    cache_key,
    listing_key,
    nearby_key,
    property_key,
    seller_listings_key,
)
from .policy import (
    flush,
    invalidate,
    invalidate_listing_write,
    invalidate_property_write,
    read_through,
    to_cacheable,
)

__all__ = [
    "ALL_LISTINGS",
    "CacheClient",
    "MemoryCache",
    "NullCache",
    "RedisCache",
    "cache_key",
    "create_cache",
    "flush",
    "invalidate",
    "invalidate_listing_write",
    "invalidate_property_write",
    "listing_key",
    "nearby_key",
    "property_key",
    "read_through",
    "seller_listings_key",
    "to_cacheable",
]
