"""
Cache adapter implementations.

Provides the Django cache implementation of CachePort.
"""

import logging
from typing import Any, Optional

from asgiref.sync import sync_to_async
from django.core.cache import caches

from core.domain.exceptions import CacheUnavailableError
from core.infrastructure.cache import CachePort

logger = logging.getLogger(__name__)


class DjangoCacheAdapter(CachePort):
    """
    Django cache adapter implementing CachePort.

    Uses Django's cache framework (Redis in production, local memory in tests).
    Backend errors are logged and re-raised as CacheUnavailableError.
    """

    def __init__(self, alias: str = "default"):
        """
        Initialize adapter.

        Args:
            alias: Name of the Django cache to use
        """
        self.alias = alias

    @property
    def _cache(self):
        return caches[self.alias]

    async def get(self, key: str) -> Optional[Any]:
        """
        Get a value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        try:
            value = await sync_to_async(self._cache.get)(key)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Error getting from cache: %s", e, exc_info=True)
            raise CacheUnavailableError() from e
        logger.debug("Cache %s: %s", "hit" if value is not None else "miss", key)
        return value

    async def set(self, key: str, value: Any, timeout: Optional[int] = None) -> None:
        """
        Set a value in cache.

        Args:
            key: Cache key
            value: Value to cache
            timeout: Timeout in seconds (None for no expiration)
        """
        try:
            await sync_to_async(self._cache.set)(key, value, timeout=timeout)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Error setting cache: %s", e, exc_info=True)
            raise CacheUnavailableError() from e
        logger.debug("Cache set: %s (timeout=%s)", key, timeout)

    async def delete(self, key: str) -> None:
        """
        Delete a value from cache.

        Args:
            key: Cache key
        """
        try:
            await sync_to_async(self._cache.delete)(key)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Error deleting from cache: %s", e, exc_info=True)
            raise CacheUnavailableError() from e
        logger.debug("Cache delete: %s", key)

    async def incr(self, key: str, delta: int = 1, timeout: Optional[int] = None) -> int:
        """
        Increment an integer value, creating it when missing.

        Args:
            key: Cache key
            delta: Amount to add
            timeout: Timeout in seconds applied when the key is created

        Returns:
            The new value
        """

        def _incr() -> int:
            if self._cache.add(key, delta, timeout=timeout):
                return delta
            try:
                return self._cache.incr(key, delta)
            except ValueError:
                # Expired between add() and incr()
                self._cache.set(key, delta, timeout=timeout)
                return delta

        try:
            return await sync_to_async(_incr)()
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Error incrementing cache key: %s", e, exc_info=True)
            raise CacheUnavailableError() from e

    async def expire(self, key: str, timeout: int) -> bool:
        """
        Reset the expiration of an existing key.

        Args:
            key: Cache key
            timeout: New timeout in seconds

        Returns:
            True if the key existed
        """
        try:
            return bool(await sync_to_async(self._cache.touch)(key, timeout))
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Error touching cache key: %s", e, exc_info=True)
            raise CacheUnavailableError() from e


# Global cache instance
cache_adapter = DjangoCacheAdapter()
