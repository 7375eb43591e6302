"""
Redis caching service for read-side responses.

CACHING STRATEGY
================

What we cache:
  - Event listing responses (paginated, JSON-serialized)
    key pattern: "events:list:page={page}&size={size}&upcoming={upcoming}"
  - Per-event registration summaries (capacity, registered/waitlisted counts)
    key pattern: "events:summary:{event_id}:gen={generation}"

What we never cache:
  - Anything the registration core decides on. Admission and promotion
    read capacity and the live registered count inside their own
    transaction; this cache only answers display queries.

Invalidation strategy:
  - On event creation: delete all event list keys (SCAN on the prefix)
  - After a committed register/cancel: INCR the event's summary generation
    ("events:summary_gen:{event_id}"). Readers fetch the generation before
    computing a summary and store it under that generation, so a summary
    computed before a commit lands under a key no later reader asks for.
  - TTL-based expiry as safety net

Failure policy:
  Redis is optional. Every operation fails open: on connection errors the
  caller falls through to the database and the error is logged.
"""

import json
from typing import Optional

import redis.asyncio as redis
from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_cache_operation

logger = get_logger(__name__)

EVENT_LIST_PREFIX = "events:list:"
EVENT_SUMMARY_PREFIX = "events:summary:"
EVENT_SUMMARY_GENERATION_PREFIX = "events:summary_gen:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled or down."""
    global _redis_client
    settings = get_settings()

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
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


def _make_event_list_key(page: int, page_size: int, upcoming_only: bool) -> str:
    return f"{EVENT_LIST_PREFIX}page={page}&size={page_size}&upcoming={upcoming_only}"


def _make_summary_key(event_id: int, generation: int) -> str:
    return f"{EVENT_SUMMARY_PREFIX}{event_id}:gen={generation}"


def _make_summary_generation_key(event_id: int) -> str:
    return f"{EVENT_SUMMARY_GENERATION_PREFIX}{event_id}"


async def _get_json(key: str) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

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


async def _set_json(key: str, data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    ttl = get_settings().REDIS_CACHE_TTL
    try:
        await client.setex(key, ttl, json.dumps(data, default=str))
        record_cache_operation("set", hit=False)
        logger.debug("cache_set", key=key, ttl=ttl)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def get_cached_events(page: int, page_size: int, upcoming_only: bool) -> Optional[dict]:
    return await _get_json(_make_event_list_key(page, page_size, upcoming_only))


async def set_cached_events(page: int, page_size: int, upcoming_only: bool, data: dict) -> None:
    await _set_json(_make_event_list_key(page, page_size, upcoming_only), data)


async def get_summary_generation(event_id: int) -> Optional[int]:
    """
    Current summary generation for an event.
    None when Redis is unavailable; callers must then skip the summary cache.
    """
    client = await get_redis()
    if not client:
        return None

    key = _make_summary_generation_key(event_id)
    try:
        value = await client.get(key)
        return int(value or 0)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None


async def get_cached_summary(event_id: int, generation: int) -> Optional[dict]:
    return await _get_json(_make_summary_key(event_id, generation))


async def set_cached_summary(event_id: int, generation: int, data: dict) -> None:
    await _set_json(_make_summary_key(event_id, generation), data)


async def invalidate_event_cache() -> None:
    """
    Invalidate all cached event listings.
    Uses SCAN to find and delete all keys matching the prefix.
    """
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{EVENT_LIST_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", prefix=EVENT_LIST_PREFIX, keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def invalidate_event_summary(event_id: int) -> None:
    """Move the event to a new summary generation; older entries expire by TTL."""
    client = await get_redis()
    if not client:
        return

    key = _make_summary_generation_key(event_id)
    try:
        generation = await client.incr(key)
        logger.debug("cache_invalidated", key=key, generation=generation)
    except Exception as e:
        logger.error("cache_invalidation_error", key=key, error=str(e))


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
    except Exception as e:
        return {"status": "error", "error": str(e)}
