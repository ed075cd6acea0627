"""
Redis cache for the class listing.

Listing pages are cached as JSON under a key that embeds a generation number:

    classes:list:g{generation}:page={page}&size={size}&upcoming={upcoming}

Anything that moves a participant count or adds/removes a class bumps the
generation with one INCR. Readers build keys from the new generation, so
every older page is unreachable at once and simply ages out on its TTL. No
SCAN over the keyspace, and a page written by a request that raced the bump
lands under the old generation where nobody reads it.

Single-class reads, eligibility and participant status are never cached; they
must show the live count.

Redis is optional. Disabled or unreachable means every lookup is a miss and
the database answers.
"""

import json
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from yoga_booking.core.config import get_settings
from yoga_booking.core.logging import get_logger
from yoga_booking.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

LIST_KEY_PREFIX = "classes:list:"
GENERATION_KEY = "classes:list:generation"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Shared client, or None when caching is disabled or Redis is down."""
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
        except RedisError as e:
            logger.error("redis_connection_failed", error=str(e))
            await client.aclose()
            return None
        _redis_client = client
        logger.info("redis_connected", url=settings.REDIS_URL)

    return _redis_client


async def close_redis() -> None:
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _make_class_list_key(generation: int, page: int, page_size: int, upcoming_only: bool) -> str:
    return f"{LIST_KEY_PREFIX}g{generation}:page={page}&size={page_size}&upcoming={upcoming_only}"


async def _generation(client: redis.Redis) -> int:
    return int(await client.get(GENERATION_KEY) or 0)


async def get_cached_classes(page: int, page_size: int, upcoming_only: bool) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    try:
        key = _make_class_list_key(await _generation(client), page, page_size, upcoming_only)
        data = await client.get(key)
    except RedisError as e:
        logger.error("cache_get_error", error=str(e))
        return None

    record_cache_operation("get", hit=data is not None)
    return json.loads(data) if data else None


async def set_cached_classes(
    page: int,
    page_size: int,
    upcoming_only: bool,
    data: dict,
) -> None:
    client = await get_redis()
    if not client:
        return

    try:
        key = _make_class_list_key(await _generation(client), page, page_size, upcoming_only)
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
    except RedisError as e:
        logger.error("cache_set_error", error=str(e))
        return
    record_cache_operation("set", hit=False)


async def invalidate_class_cache() -> None:
    """Retire every cached listing page by moving to the next generation."""
    client = await get_redis()
    if not client:
        return

    try:
        generation = await client.incr(GENERATION_KEY)
    except RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))
        return
    logger.info("cache_invalidated", generation=generation)


async def get_cache_stats() -> dict:
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        generation = await _generation(client)
    except RedisError as e:
        return {"status": "error", "error": str(e)}

    hits = info.get("keyspace_hits", 0)
    misses = info.get("keyspace_misses", 0)
    return {
        "status": "connected",
        "hits": hits,
        "misses": misses,
        "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        "generation": generation,
    }
