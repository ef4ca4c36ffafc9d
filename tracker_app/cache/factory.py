"""
Factory for the tracker option cache.

The settings service keeps a read-through copy of each tracker option
(`option:umami_website_id`, `option:umami_analytics_url`) so rendering a
page does not hit the settings store. This module picks where those copies
live. The instance is built once per process and shared.
"""

import logging
from enum import Enum

from .strategies import CacheStrategy, RedisCache, InMemoryCache, NullCache
from tracker_app.config import settings

logger = logging.getLogger(__name__)


class CacheBackend(Enum):
    """Where cached option values are kept"""
    REDIS = "redis"
    MEMORY = "memory"
    NULL = "null"


def _connect_redis(url: str) -> CacheStrategy:
    """
    Option cache on Redis, or a per-process cache if Redis is unreachable.

    Options are small and rarely written, so losing the shared cache only
    costs extra store reads; the site keeps serving pages.
    """
    import redis

    try:
        client = redis.from_url(
            url,
            decode_responses=False,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        client.ping()
    except Exception as e:
        logger.warning("Redis at %s unreachable (%s); caching tracker options in memory", url, e)
        return InMemoryCache()

    logger.info("Tracker options cached in Redis")
    return RedisCache(client)


class CacheFactory:
    """
    Builds the option cache chosen by settings.cache_backend.

    Creates the instance once and reuses it. Connection details come from
    settings rather than parameters.
    """

    _instance: CacheStrategy = None

    @classmethod
    def create(cls, backend: CacheBackend) -> CacheStrategy:
        """
        Return the shared option cache, creating it on first use.

        Args:
            backend: Cache backend (from enum)

        Raises:
            ValueError: for a backend this factory does not know
        """
        if cls._instance is not None:
            return cls._instance

        if backend == CacheBackend.REDIS:
            cls._instance = _connect_redis(settings.redis_url)
        elif backend == CacheBackend.MEMORY:
            cls._instance = InMemoryCache()
            logger.info("Tracker options cached in memory (ttl=%ss)", settings.cache_ttl)
        elif backend == CacheBackend.NULL:
            cls._instance = NullCache()
            logger.info("Tracker option cache disabled")
        else:
            raise ValueError(f"Unknown cache backend: {backend}")

        return cls._instance

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
