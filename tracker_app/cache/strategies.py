"""
Cache strategies for option reads.

Every HTML page render reads the tracker options, so reads go through a
cache-aside layer. Backends: Redis, in-memory, and a Null object.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class CacheStrategy(ABC):
    """
    Abstract base class for cache strategies.

    All methods are async because cache operations may involve network I/O
    (Redis). A cache failure must never break a page render, so
    implementations report errors as misses instead of raising.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int = 300) -> bool:
        """
        Set value in cache with TTL (Time To Live).

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds

        Returns:
            True if successful, False otherwise
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete key from cache. Returns True if the key existed."""
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if key exists in cache."""
        pass


class RedisCache(CacheStrategy):
    """
    Redis cache implementation.

    Shared between workers, so an update made through one worker's admin
    form invalidates the cached options for all of them.
    """

    def __init__(self, redis_client, prefix: str = "umami:"):
        """
        Initialize Redis cache.

        Args:
            redis_client: Redis client instance (redis.Redis)
            prefix: Namespace prepended to every key
        """
        self.redis = redis_client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        try:
            value = self.redis.get(self._key(key))
            return value.decode("utf-8") if value is not None else None
        except Exception as e:
            logger.warning("Redis get error for %s: %s", key, e)
            return None

    async def set(self, key: str, value: str, ttl: int = 300) -> bool:
        try:
            return bool(self.redis.setex(self._key(key), ttl, value))
        except Exception as e:
            logger.warning("Redis set error for %s: %s", key, e)
            return False

    async def delete(self, key: str) -> bool:
        try:
            return bool(self.redis.delete(self._key(key)))
        except Exception as e:
            logger.warning("Redis delete error for %s: %s", key, e)
            return False

    async def exists(self, key: str) -> bool:
        try:
            return bool(self.redis.exists(self._key(key)))
        except Exception as e:
            logger.warning("Redis exists error for %s: %s", key, e)
            return False


class InMemoryCache(CacheStrategy):
    """
    In-memory cache using a dict of (value, expires_at) pairs.

    Per-process only: good for development, tests and single-worker
    deployments. Expired entries are dropped lazily on read.
    """

    def __init__(self):
        self._cache: Dict[str, Tuple[str, float]] = {}

    async def get(self, key: str) -> Optional[str]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at < time.monotonic():
            del self._cache[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl: int = 300) -> bool:
        self._cache[key] = (value, time.monotonic() + ttl)
        return True

    async def delete(self, key: str) -> bool:
        return self._cache.pop(key, None) is not None

    async def exists(self, key: str) -> bool:
        return await self.get(key) is not None


class NullCache(CacheStrategy):
    """
    Null Object Pattern - cache that does nothing.

    Every read goes straight to the settings store.
    """

    async def get(self, key: str) -> Optional[str]:
        """Always returns None (cache miss)"""
        return None

    async def set(self, key: str, value: str, ttl: int = 300) -> bool:
        return True

    async def delete(self, key: str) -> bool:
        return True

    async def exists(self, key: str) -> bool:
        return False
