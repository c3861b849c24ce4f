"""
Redis cache utility for leaderboard caching
"""
import json
import logging
from typing import Any, Optional

import redis

from codequest.config import settings

logger = logging.getLogger(__name__)


class CacheService:
    """
    Redis-based cache, connected lazily

    When REDIS_URL is unset or Redis is unreachable every operation is a
    miss/no-op, so callers never depend on the cache being up.
    """

    LEADERBOARD_PREFIX = "leaderboard"

    def __init__(self, url: Optional[str] = None):
        self.url = url
        self._client: Optional[redis.Redis] = None
        self._connect_attempted = False

    @property
    def client(self) -> Optional[redis.Redis]:
        if self._connect_attempted:
            return self._client

        self._connect_attempted = True
        if not self.url:
            logger.info("REDIS_URL not set. Caching disabled.")
            return None

        try:
            client = redis.from_url(self.url, decode_responses=True, socket_connect_timeout=5)
            client.ping()
            self._client = client
            logger.info("Redis connection established")
        except redis.RedisError as e:
            logger.warning(f"Redis connection failed: {str(e)}. Caching disabled.")
            self._client = None
        return self._client

    def leaderboard_key(self, limit: int) -> str:
        return f"{self.LEADERBOARD_PREFIX}:{limit}"

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache

        Returns:
            Cached value or None
        """
        if not self.client:
            return None

        try:
            value = self.client.get(key)
            if value:
                logger.debug(f"Cache hit: {key}")
                return json.loads(value)
            logger.debug(f"Cache miss: {key}")
            return None
        except (redis.RedisError, ValueError) as e:
            logger.error(f"Cache get error: {str(e)}")
            return None

    def set(self, key: str, value: Any, ttl: int = 60) -> bool:
        """Set a JSON serializable value with a TTL in seconds"""
        if not self.client:
            return False

        try:
            self.client.setex(key, ttl, json.dumps(value, default=str))
            return True
        except (redis.RedisError, TypeError) as e:
            logger.error(f"Cache set error: {str(e)}")
            return False

    def invalidate_leaderboard(self) -> int:
        """Drop every cached leaderboard page"""
        if not self.client:
            return 0

        try:
            keys = list(self.client.scan_iter(match=f"{self.LEADERBOARD_PREFIX}:*"))
            if keys:
                self.client.delete(*keys)
                logger.info(f"Cleared {len(keys)} leaderboard cache entries")
            return len(keys)
        except redis.RedisError as e:
            logger.error(f"Cache clear error: {str(e)}")
            return 0


# Global instance
cache_service = CacheService(settings.REDIS_URL)
