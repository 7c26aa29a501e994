"""
Cache abstraction (port).

This module defines the cache interface that can be implemented
with different backends (Redis, Memcached, in-memory, etc.).
Implementations raise CacheUnavailableError when the backend fails so
callers can decide whether to fail open.
"""
from abc import ABC, abstractmethod
from typing import Any, Optional


class CachePort(ABC):
    """
    Abstract cache port.

    This defines the interface for caching operations.
    Implementations can use Redis, Memcached, or in-memory cache.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """
        Get a value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, timeout: Optional[int] = None) -> None:
        """
        Set a value in cache.

        Args:
            key: Cache key
            value: Value to cache
            timeout: Timeout in seconds (None for no expiration)
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """
        Delete a value from cache.

        Args:
            key: Cache key
        """
        pass

    @abstractmethod
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
        pass

    @abstractmethod
    async def expire(self, key: str, timeout: int) -> bool:
        """
        Reset the expiration of an existing key.

        Args:
            key: Cache key
            timeout: New timeout in seconds

        Returns:
            True if the key existed
        """
        pass
