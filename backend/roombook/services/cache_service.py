"""
Redis caching for the admin reservation statistics.

CACHING STRATEGY
================

What we cache:
  - The admin statistics payload (status counts, today's and this week's
    bookings), keyed by UTC day: "reservations:stats:{YYYY-MM-DD}"

Why:
  - Stats are several COUNT queries over the whole reservations table
  - Admin dashboards poll them; slightly stale numbers are acceptable

Invalidation strategy:
  - Every reservation write (create, cancel, status change, sweep) deletes all
    "reservations:stats:*" keys
  - TTL-based expiry as safety net (REDIS_CACHE_TTL)

What we never cache:
  - Availability checks and conflict lookups. A stale "free" answer is a
    double booking waiting to happen; those reads always hit the database.

Redis failures degrade to a cache miss. The database stays authoritative.
"""

import json
from datetime import date
from typing import Optional

import redis.asyncio as redis
from roombook.core.config import get_settings
from roombook.core.logging import get_logger
from roombook.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

STATS_KEY_PREFIX = "reservations:stats:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled or down."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _make_stats_key(day: date) -> str:
    return f"{STATS_KEY_PREFIX}{day.isoformat()}"


async def get_cached_stats(day: date) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = _make_stats_key(day)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=data is not None)
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_stats(day: date, data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    key = _make_stats_key(day)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        record_cache_operation("set", hit=False)
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_stats_cache() -> None:
    """Drop every cached stats payload after a reservation write."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{STATS_KEY_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        if deleted:
            logger.info("cache_invalidated", keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Redis health for the /health endpoint."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
