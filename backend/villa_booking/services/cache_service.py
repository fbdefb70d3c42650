"""
Redis caching service for the public occupancy calendar.

CACHING STRATEGY
================

What we cache:
  - Occupied date ranges for a calendar window (JSON-serialized)
  - Cache key pattern: "calendar:{unit}:{start}:{end}"

Why:
  - The date picker asks for the calendar on every page view
  - Occupancy changes only when a booking is created, cancelled or expires

Invalidation strategy:
  - Services that change occupancy (create, cancel, reject, lazy expiry)
    mark the session dirty with `mark_calendar_dirty`
  - The request's unit of work calls `invalidate_if_dirty` after the
    transaction ends, which deletes every "calendar:*" key for the unit.
    Invalidating before the commit would let a concurrent read re-cache
    the old occupancy
  - TTL-based expiry as safety net (5 minutes)

Why NOT use the cache for availability decisions:
  - create() needs the live state under its optimistic lock; a stale calendar
    would let a double booking through. The cache is display-only.
"""

import json
from datetime import datetime
from typing import Optional

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncSession

from villa_booking.core.config import get_settings
from villa_booking.core.logging import get_logger
from villa_booking.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

_redis_client: Optional[redis.Redis] = None

# Session.info flag set when a transaction changed occupancy
CALENDAR_DIRTY = "calendar_dirty"


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled or down."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )
        try:
            await client.ping()
        except (redis.RedisError, OSError) as e:
            logger.error("redis_connection_failed", error=str(e))
            await client.aclose()
            return None
        _redis_client = client
        logger.info("redis_connected", url=settings.REDIS_URL)

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _calendar_prefix() -> str:
    return f"calendar:{settings.UNIT_ID}:"


def _make_calendar_key(start: datetime, end: datetime) -> str:
    return f"{_calendar_prefix()}{start.isoformat()}:{end.isoformat()}"


async def get_cached_calendar(start: datetime, end: datetime) -> Optional[list[dict]]:
    client = await get_redis()
    if not client:
        return None

    key = _make_calendar_key(start, end)
    try:
        data = await client.get(key)
    except redis.RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None

    record_cache_operation("get", hit=data is not None)
    if data:
        logger.debug("cache_hit", key=key)
        return json.loads(data)
    logger.debug("cache_miss", key=key)
    return None


async def set_cached_calendar(start: datetime, end: datetime, occupied: list[dict]) -> None:
    client = await get_redis()
    if not client:
        return

    key = _make_calendar_key(start, end)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(occupied, default=str))
        record_cache_operation("set", hit=True)
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except redis.RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_calendar_cache() -> None:
    """Drop every cached calendar window for the unit."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{_calendar_prefix()}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except redis.RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))


def mark_calendar_dirty(db: AsyncSession) -> None:
    db.info[CALENDAR_DIRTY] = True


async def invalidate_if_dirty(db: AsyncSession) -> None:
    """Invalidate once per unit of work, and only if occupancy changed."""
    if db.info.pop(CALENDAR_DIRTY, False):
        await invalidate_calendar_cache()


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
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
    except redis.RedisError as e:
        return {"status": "error", "error": str(e)}
