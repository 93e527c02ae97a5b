"""
Redis Caching Layer

Read-through cache for API responses, keyed by domain, rounded location
and time bucket. The engine never reads it.
"""
import asyncio
import hashlib
import json
import time
from functools import wraps
from typing import Any, Callable, Optional, Sequence

import redis
from redis.exceptions import RedisError

from config.settings import settings
from src.tidewatch.utils.logger import get_logger

logger = get_logger(__name__)

# Seconds to wait before retrying an unreachable Redis
RECONNECT_BACKOFF_SECONDS = 60

redis_client: Optional[redis.Redis] = None
_last_failure: Optional[float] = None


def get_redis_client() -> Optional[redis.Redis]:
    """
    Get Redis client instance.

    Returns:
        Redis client if available, None if not configured or unreachable
    """
    global redis_client, _last_failure

    if redis_client is not None:
        return redis_client

    redis_url = settings.redis_url
    if not redis_url:
        return None

    if _last_failure is not None and time.monotonic() - _last_failure < RECONNECT_BACKOFF_SECONDS:
        return None

    try:
        client = redis.Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        client.ping()
    except (RedisError, ValueError) as e:
        logger.warning("redis_connection_failed", error=str(e))
        _last_failure = time.monotonic()
        return None

    redis_client = client
    _last_failure = None
    return redis_client


def time_bucket(now: Optional[float] = None, bucket_seconds: Optional[int] = None) -> int:
    """Index of the cache time bucket containing ``now``."""
    seconds = bucket_seconds or settings.cache_time_bucket_seconds
    return int((now if now is not None else time.time()) // seconds)


def make_cache_key(prefix: str, bucket: int, **params) -> str:
    """
    Generate a deterministic cache key.

    Floats are rounded to 3 decimals (about 100 m) so nearby requests share
    an entry.
    """
    key_data = {
        k: round(v, 3) if isinstance(v, float) else str(getattr(v, "value", v))
        for k, v in sorted(params.items())
    }
    key_string = json.dumps(key_data, sort_keys=True)
    key_hash = hashlib.md5(key_string.encode()).hexdigest()
    return f"{prefix}:{bucket}:{key_hash}"


def cache_result(prefix: str, key_params: Sequence[str], ttl: Optional[int] = None):
    """
    Decorator to cache async endpoint results in Redis.

    Args:
        prefix: Cache key prefix
        key_params: Keyword arguments that identify the request
        ttl: Time to live in seconds (defaults to settings.cache_ttl_seconds)

    Returns:
        Decorated function with caching
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            client = get_redis_client()
            if client is None:
                return await func(*args, **kwargs)

            cache_key = make_cache_key(
                prefix, time_bucket(), **{k: kwargs.get(k) for k in key_params}
            )

            try:
                cached = await asyncio.to_thread(client.get, cache_key)
                if cached is not None:
                    logger.debug("cache_hit", key=cache_key)
                    return json.loads(cached)
            except RedisError as e:
                logger.warning("cache_read_error", error=str(e))

            result = await func(*args, **kwargs)

            try:
                payload = json.dumps(result, default=str)
                await asyncio.to_thread(client.setex, cache_key, ttl or settings.cache_ttl_seconds, payload)
            except (RedisError, TypeError) as e:
                logger.warning("cache_write_error", error=str(e))

            return result

        return wrapper
    return decorator


def get_cache_stats() -> dict:
    """
    Get Redis cache statistics.

    Returns:
        Dictionary with cache stats
    """
    client = get_redis_client()

    if client is None:
        return {
            "available": False,
            "error": "Redis connection unavailable"
        }

    try:
        info = client.info("stats")
        return {
            "available": True,
            "total_keys": client.dbsize(),
            "hits": info.get("keyspace_hits", 0),
            "misses": info.get("keyspace_misses", 0),
        }
    except RedisError as e:
        return {
            "available": False,
            "error": str(e)
        }
