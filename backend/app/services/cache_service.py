"""
Redis cache in front of the public vehicle catalog.

Only GET /vehicles is cached. One entry per distinct filter/page combination,
keyed as

    vehicles:list:category=<c>&location=<l>&status=<s>&page=<p>&limit=<n>

with missing filters spelled "all", so "?category=all" and no category at all
share an entry. Every fleet write (create, update, retire, pricing) drops the
whole "vehicles:list:" namespace; REDIS_CACHE_TTL bounds staleness if a drop
is ever missed.

Availability answers and bookings are never cached: they have to see the
latest committed bookings.

Redis is optional. Disabled, unreachable or erroring, each call here behaves
like a miss (or a no-op for writes) and the catalog is served from Postgres.
"""

import json
from typing import Optional

import redis.asyncio as redis
from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

VEHICLE_LIST_PREFIX = "vehicles:list:"
_INVALIDATE_BATCH = 100

_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Shared connection, opened lazily. None when caching is off or Redis is down."""
    global _client

    if not settings.REDIS_ENABLED:
        return None
    if _client is not None:
        return _client

    candidate = redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        retry_on_timeout=True,
    )
    try:
        await candidate.ping()
    except (redis.RedisError, OSError) as e:
        logger.warning("redis_unreachable", url=settings.REDIS_URL, error=str(e))
        await candidate.aclose()
        return None

    logger.info("redis_connected", url=settings.REDIS_URL)
    _client = candidate
    return _client


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


def make_vehicle_list_key(
    category: Optional[str],
    location: Optional[str],
    status: Optional[str],
    page: int,
    limit: int,
) -> str:
    filters = {"category": category, "location": location, "status": status}
    parts = [f"{name}={value or 'all'}" for name, value in filters.items()]
    parts += [f"page={page}", f"limit={limit}"]
    return VEHICLE_LIST_PREFIX + "&".join(parts)


async def get_cached_vehicle_list(key: str) -> Optional[dict]:
    client = await get_redis()
    if client is None:
        return None

    try:
        raw = await client.get(key)
    except redis.RedisError as e:
        logger.error("vehicle_list_cache_read_failed", key=key, error=str(e))
        return None

    record_cache_operation("get", hit=raw is not None)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        # Corrupt entry; treat as a miss and let the next write replace it
        logger.warning("vehicle_list_cache_corrupt", key=key)
        return None


async def set_cached_vehicle_list(key: str, data: dict) -> None:
    client = await get_redis()
    if client is None:
        return

    try:
        await client.set(key, json.dumps(data, default=str), ex=settings.REDIS_CACHE_TTL)
    except redis.RedisError as e:
        logger.error("vehicle_list_cache_write_failed", key=key, error=str(e))


async def invalidate_vehicle_cache() -> None:
    """Drop every cached catalog page after a fleet write."""
    client = await get_redis()
    if client is None:
        return

    batch: list[str] = []
    dropped = 0
    try:
        async for key in client.scan_iter(match=f"{VEHICLE_LIST_PREFIX}*", count=_INVALIDATE_BATCH):
            batch.append(key)
            if len(batch) >= _INVALIDATE_BATCH:
                dropped += await client.unlink(*batch)
                batch.clear()
        if batch:
            dropped += await client.unlink(*batch)
    except redis.RedisError as e:
        logger.error("vehicle_list_cache_invalidation_failed", error=str(e))
        return

    logger.info("vehicle_list_cache_invalidated", keys_dropped=dropped)


async def get_cache_stats() -> dict:
    """Keyspace hit/miss counters for /health."""
    client = await get_redis()
    if client is None:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
    except redis.RedisError as e:
        return {"status": "error", "error": str(e)}

    hits = info.get("keyspace_hits", 0)
    misses = info.get("keyspace_misses", 0)
    lookups = hits + misses
    return {
        "status": "connected",
        "hits": hits,
        "misses": misses,
        "hit_rate": round(hits * 100 / lookups, 2) if lookups else 0.0,
    }
