"""
Redis Client Management
Handles the shared asyncio Redis connection used by the response cache,
session store, catalog index and reindex job log
"""

from functools import lru_cache
from typing import Optional

import redis.asyncio as aioredis
from loguru import logger

from ..config import settings


@lru_cache(maxsize=1)
def get_redis_client() -> Optional[aioredis.Redis]:
    """
    Get Redis client singleton

    The client is lazy: no connection is opened until the first command,
    so a missing Redis server only shows up as command errors that every
    caller degrades around.

    Returns:
        redis.asyncio.Redis, or None when Redis is disabled (REDIS_HOST empty)
    """
    if not settings.redis_enabled:
        logger.info("Redis disabled (REDIS_HOST empty), using in-memory stores")
        return None

    client = aioredis.Redis(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        password=settings.REDIS_PASSWORD or None,
        db=settings.REDIS_DB,
        decode_responses=False,  # Keep as bytes for vector operations
        socket_timeout=2,
        socket_connect_timeout=2,
    )
    logger.info(
        f"Redis client configured: {settings.REDIS_HOST}:{settings.REDIS_PORT} "
        f"(DB: {settings.REDIS_DB})"
    )
    return client


async def check_redis_health(client: Optional[aioredis.Redis]) -> bool:
    """
    Check if Redis is healthy

    Returns:
        bool: True if Redis is accessible
    """
    if client is None:
        return False
    try:
        return bool(await client.ping())
    except Exception as e:
        logger.warning(f"Redis health check failed: {e}")
        return False


async def get_redis_info(client: Optional[aioredis.Redis]) -> dict:
    """
    Get Redis server statistics

    Returns:
        dict: Server statistics (empty on error)
    """
    if client is None:
        return {}
    try:
        info = await client.info()
        return {
            "redis_version": info.get("redis_version"),
            "connected_clients": info.get("connected_clients"),
            "used_memory": info.get("used_memory_human"),
            "uptime_days": info.get("uptime_in_days"),
        }
    except Exception as e:
        logger.error(f"Error getting Redis stats: {e}")
        return {}
