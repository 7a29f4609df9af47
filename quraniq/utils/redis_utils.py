"""
Redis utility module for the optional ghost-cleanup lock.

Redis is only used when REDIS_URL is configured; without it cleanups are
de-duplicated in-process only.
"""

import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from quraniq.config import Config

logger = logging.getLogger(__name__)


class RedisUtils:
    """Centralized Redis configuration and connection utilities."""
    
    @staticmethod
    def get_redis_url() -> Optional[str]:
        """Get the configured Redis URL, warning about plaintext connections."""
        redis_url = Config.REDIS_URL
        if not redis_url:
            return None
        if not Config.DEBUG and not redis_url.startswith('rediss://'):
            logger.warning("REDIS_URL does not use TLS (rediss://)")
        return redis_url
    
    @staticmethod
    async def create_redis_client() -> Optional[redis.Redis]:
        """Create a Redis client, or None when Redis is not configured or unreachable."""
        redis_url = RedisUtils.get_redis_url()
        if not redis_url:
            return None
            
        try:
            client = redis.from_url(redis_url)
            # Test connection
            await client.ping()
            logger.info("Successfully connected to Redis")
            return client
        except (RedisError, OSError) as e:
            logger.error(f"Failed to connect to Redis: {e}")
            return None
