"""
Caching utilities for frequently accessed data.

Provides centralized cache management with consistent TTLs and invalidation patterns.
Every operation degrades to a miss (or a no-op) when the cache backend fails.
"""
import logging
from typing import Optional, Any
from django.core.cache import cache

logger = logging.getLogger(__name__)


class CacheKeys:
    """Centralized cache key definitions with consistent naming."""

    # Effective permission set of a user in a tenant context
    USER_PERMISSIONS = "rbac:perms:{generation}:{user_version}:{tenant_id}:{user_id}"

    # Counter bumped on every role mutation
    RBAC_GENERATION = "rbac:generation"

    # Counter bumped on every assignment change for one user
    USER_VERSION = "rbac:user_version:{user_id}"

    @classmethod
    def format(cls, key_template: str, **kwargs) -> str:
        """Format a cache key with provided parameters."""
        return key_template.format(**kwargs)


class CacheTTL:
    """Cache TTL (Time To Live) constants in seconds."""

    RBAC_PERMISSIONS = 300  # 5 minutes


class CacheService:
    """Service for managing cached data with consistent patterns."""

    @staticmethod
    def get(key: str, default: Any = None) -> Any:
        """
        Get value from cache.

        Args:
            key: Cache key
            default: Default value if key not found

        Returns:
            Cached value or default
        """
        try:
            value = cache.get(key, default)
            if value is not None:
                logger.debug(f"Cache HIT: {key}")
            else:
                logger.debug(f"Cache MISS: {key}")
            return value
        except Exception as e:
            logger.error(f"Cache get error for key {key}: {str(e)}")
            return default

    @staticmethod
    def set(key: str, value: Any, ttl: int = None) -> bool:
        """
        Set value in cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds (None keeps the value until evicted)

        Returns:
            True if successful, False otherwise
        """
        try:
            cache.set(key, value, timeout=ttl)
            logger.debug(f"Cache SET: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"Cache set error for key {key}: {str(e)}")
            return False

    @staticmethod
    def delete(key: str) -> bool:
        """
        Delete value from cache.

        Args:
            key: Cache key

        Returns:
            True if successful, False otherwise
        """
        try:
            cache.delete(key)
            logger.debug(f"Cache DELETE: {key}")
            return True
        except Exception as e:
            logger.error(f"Cache delete error for key {key}: {str(e)}")
            return False

    @staticmethod
    def incr(key: str) -> Optional[int]:
        """
        Atomically increment a counter, creating it at 1 when absent.

        Counters never expire on their own.

        Returns:
            New counter value, or None if the backend failed
        """
        try:
            if cache.add(key, 1, timeout=None):
                return 1
            return cache.incr(key)
        except ValueError:
            # Evicted between add() and incr()
            cache.set(key, 1, timeout=None)
            return 1
        except Exception as e:
            logger.error(f"Cache incr error for key {key}: {str(e)}")
            return None
