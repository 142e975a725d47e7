"""Redis store for caching.

Handles:
- Caching with TTL policies
- JSON payload helpers

TTL policies:
- Listing facet summary (brands, colors, sizes, price range): 30-300 seconds

Redis is optional: callers treat RuntimeError (not initialized) and
RedisError (unreachable) as a cache miss.
"""

import json
import logging
from typing import Any

import redis.asyncio as redis

from storefront.settings import get_settings

# Key prefixes
PREFIX_FILTER_OPTIONS = "catalog:filters:"

# Redis client (initialized on startup)
_redis: redis.Redis | None = None
logger = logging.getLogger("uvicorn.error")


async def init_redis() -> None:
    """Initialize Redis connection."""
    global _redis
    settings = get_settings()
    client = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    # Validate connectivity early; leave the client unset if Redis is down.
    await client.ping()
    _redis = client
    logger.info("Redis connected")


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def _get_redis() -> redis.Redis:
    """Get Redis client instance."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


# ============================================================
# Generic cache operations
# ============================================================


async def cache_get(key: str) -> str | None:
    """Get value from cache.

    Args:
        key: Cache key.

    Returns:
        Cached value or None if not found.
    """
    return await _get_redis().get(key)


async def cache_set(key: str, value: str, ttl: int) -> None:
    """Set value in cache with TTL.

    Args:
        key: Cache key.
        value: Value to cache.
        ttl: Time-to-live in seconds.
    """
    await _get_redis().setex(key, ttl, value)


async def cache_delete_prefix(prefix: str) -> int:
    """Delete every key under a prefix.

    Returns:
        Number of keys removed.
    """
    client = _get_redis()
    removed = 0
    async for key in client.scan_iter(match=f"{prefix}*"):
        removed += await client.delete(key)
    return removed


async def cache_get_json(key: str) -> dict[str, Any] | None:
    """Get JSON value from cache."""
    value = await cache_get(key)
    if value:
        return json.loads(value)
    return None


async def cache_set_json(key: str, value: dict[str, Any], ttl: int) -> None:
    """Set JSON value in cache."""
    await cache_set(key, json.dumps(value), ttl)


# ============================================================
# Catalog facet cache
# ============================================================


async def get_filter_options_cache(status: str = "active") -> dict[str, Any] | None:
    """Get cached facet summary for products in a given status."""
    return await cache_get_json(f"{PREFIX_FILTER_OPTIONS}{status}")


async def set_filter_options_cache(status: str, payload: dict[str, Any], ttl: int) -> None:
    """Cache facet summary for products in a given status."""
    await cache_set_json(f"{PREFIX_FILTER_OPTIONS}{status}", payload, ttl)


async def invalidate_filter_options_cache() -> None:
    """Drop every cached facet summary (after admin catalog writes)."""
    removed = await cache_delete_prefix(PREFIX_FILTER_OPTIONS)
    if removed:
        logger.info(f"Invalidated {removed} cached filter summaries")
