# ruff: noqa: PLW0603
"""Redis client for the moderation view cache and report rate limits.

Redis is optional. When it is unreachable at startup the service runs
without it and recomputes the aggregated view on every read.

Key layout:
- ``moderation:view:version``: counter bumped by every mutation
- ``moderation:view:{version}``: serialized aggregated view for that version
- ``reports:rate:{user_id}``: reports filed by a user in the current hour
"""

import redis.asyncio as redis
from redis.exceptions import RedisError

from src.config import get_settings
from src.core.logging import get_logger


logger = get_logger(__name__)

_redis_client: redis.Redis | None = None

VIEW_KEY_PREFIX = "moderation:view"


async def init_redis() -> redis.Redis:
    """Create the client and check that the server answers.

    Raises:
        RedisError: If the server cannot be reached
    """
    global _redis_client

    settings = get_settings()
    client = redis.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        retry_on_timeout=settings.redis_retry_on_timeout,
        health_check_interval=settings.redis_health_check_interval,
    )

    try:
        await client.ping()
    except RedisError:
        await client.aclose()
        raise

    logger.info("redis_connected", url=settings.redis_url)
    _redis_client = client
    return client


async def shutdown_redis() -> None:
    global _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("redis_disconnected")


def view_version_key() -> str:
    return f"{VIEW_KEY_PREFIX}:version"


def view_cache_key(version: int) -> str:
    return f"{VIEW_KEY_PREFIX}:{version}"


def report_rate_key(user_id: object) -> str:
    return f"reports:rate:{user_id}"
