# ruff: noqa: PLW0603
"""Redis connection management.

Redis is optional: it backs the catalog read-through cache and the app keeps
working (uncached) when it is unavailable.
"""

import redis.asyncio as redis

from learngrow.config import get_settings
from learngrow.core.logging import get_logger


logger = get_logger(__name__)

_redis_client: redis.Redis | None = None


async def init_redis() -> redis.Redis:
    """Initialize the Redis connection pool and verify connectivity."""
    global _redis_client

    settings = get_settings()

    _redis_client = redis.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        retry_on_timeout=settings.redis_retry_on_timeout,
        health_check_interval=settings.redis_health_check_interval,
        decode_responses=True,
    )

    try:
        await _redis_client.ping()
        logger.info("redis_connected", url=settings.redis_url)
    except redis.ConnectionError as e:
        logger.warning("redis_connection_failed", error=str(e))
        _redis_client = None
        raise

    return _redis_client


async def shutdown_redis() -> None:
    """Close the Redis connection."""
    global _redis_client

    if _redis_client:
        await _redis_client.aclose()
        logger.info("redis_disconnected")
        _redis_client = None


def get_redis() -> redis.Redis | None:
    """Get the Redis client, or None when running without Redis."""
    return _redis_client


def course_cache_key(course_id: str) -> str:
    """Cache key for a catalog course document."""
    return f"catalog:course:{course_id}"


def combo_cache_key(combo_id: str) -> str:
    """Cache key for a catalog combo bundle document."""
    return f"catalog:combo:{combo_id}"
