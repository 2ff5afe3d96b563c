"""
Redis cache management.
Provides connection pooling and helper functions for caching social counts.
"""
import json
import logging
from typing import Any, Optional
from redis import asyncio as aioredis
from dreamsocial.config import settings

logger = logging.getLogger(__name__)


class RedisCache:
    """Redis cache manager with connection pooling."""

    def __init__(self):
        """Initialize Redis connection pool."""
        self.redis: Optional[aioredis.Redis] = None

    async def connect(self) -> None:
        """Establish connection to Redis."""
        if not settings.redis_url:
            logger.info("No Redis URL provided - running without Redis cache")
            self.redis = None
            return

        try:
            self.redis = aioredis.from_url(
                settings.redis_url,
                password=settings.redis_password if settings.redis_password else None,
                encoding="utf-8",
                decode_responses=True,
                max_connections=50,
            )
            # Test the connection
            await self.redis.ping()
            logger.info("Connected to Redis successfully")
        except Exception as e:
            logger.warning(f"Could not connect to Redis, running without cache: {e}")
            self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        if not self.redis:
            return None

        value = await self.redis.get(key)
        if value:
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                return value
        return None

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None
    ) -> bool:
        """
        Set value in cache with optional TTL.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds

        Returns:
            True if successful
        """
        if not self.redis:
            return False

        if isinstance(value, (dict, list)):
            value = json.dumps(value)

        if ttl:
            return await self.redis.setex(key, ttl, value)
        else:
            return await self.redis.set(key, value)

    async def delete(self, *keys: str) -> bool:
        """
        Delete keys from cache.

        Returns:
            True if at least one key was deleted
        """
        if not self.redis or not keys:
            return False

        return bool(await self.redis.delete(*keys))

    async def exists(self, key: str) -> bool:
        """Check if key exists in cache."""
        if not self.redis:
            return False

        return bool(await self.redis.exists(key))


# Global cache instance
cache = RedisCache()


def _followers_key(user_id: str) -> str:
    return f"social:followers:{user_id}"


def _following_key(user_id: str) -> str:
    return f"social:following:{user_id}"


# Follower/following counts use a short TTL and are invalidated on every
# follow graph write made through this process.
async def cache_follower_count(user_id: str, count: int) -> bool:
    """Cache the number of users following user_id."""
    return await cache.set(_followers_key(user_id), count, ttl=settings.cache_counts_ttl)


async def get_cached_follower_count(user_id: str) -> Optional[int]:
    """Get cached follower count, or None on a cache miss."""
    count = await cache.get(_followers_key(user_id))
    return int(count) if count is not None else None


async def cache_following_count(user_id: str, count: int) -> bool:
    """Cache the number of users user_id follows."""
    return await cache.set(_following_key(user_id), count, ttl=settings.cache_counts_ttl)


async def get_cached_following_count(user_id: str) -> Optional[int]:
    """Get cached following count, or None on a cache miss."""
    count = await cache.get(_following_key(user_id))
    return int(count) if count is not None else None


async def invalidate_follow_counts(*user_ids: str) -> bool:
    """
    Invalidate both follow counts for every given user.

    Args:
        *user_ids: Users whose follower and following counts changed

    Returns:
        True if anything was removed
    """
    keys = []
    for user_id in user_ids:
        keys.append(_followers_key(user_id))
        keys.append(_following_key(user_id))
    return await cache.delete(*keys)
