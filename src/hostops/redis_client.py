"""Redis client factory for the confirmation store."""

import logging
import os

import redis

logger = logging.getLogger(__name__)


def get_redis_client(url: str | None = None) -> redis.Redis | None:
    """Get a Redis client, or None if Redis is not configured or unreachable.

    Args:
        url: Redis URL (default: from HOSTOPS_REDIS_URL env)

    Returns:
        Connected Redis client, or None to use the in-process store
    """
    url = url or os.environ.get("HOSTOPS_REDIS_URL")
    if not url:
        logger.info("HOSTOPS_REDIS_URL not set; using in-process confirmation store")
        return None

    try:
        client = redis.Redis.from_url(url, socket_connect_timeout=2, socket_timeout=2)
        client.ping()
        logger.info("Connected to Redis at %s", url)
        return client
    except redis.RedisError as e:
        logger.warning("Could not connect to Redis at %s: %s", url, e)
        return None
