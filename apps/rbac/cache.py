"""
Cache of resolved user permissions.

Entries are keyed by ``(user_id, tenant_id)`` plus two counters:

- a per-user version, bumped when one of the user's assignments changes
- a global generation, bumped on any role mutation, since an edit to a
  role can change the effective permissions of every role inheriting it

Bumping a counter makes every older key unreachable; stale entries age
out through the TTL. An entry never outlives the earliest expiry of the
assignments it was built from.
"""
import logging
from datetime import datetime
from typing import FrozenSet, Optional

from django.conf import settings
from django.utils import timezone

from apps.core.cache import CacheKeys, CacheService, CacheTTL

logger = logging.getLogger(__name__)


class PermissionCache:
    """
    Versioned cache of effective permission sets.

    Callers take the key with ``key_for()`` before reading assignments and
    reuse it for ``get()`` and ``set()``. A counter bumped while the read
    is in flight then leaves the stored entry under an unreachable key.
    """

    def __init__(self, ttl: Optional[int] = None):
        if ttl is None:
            ttl = getattr(settings, 'RBAC_PERMISSION_CACHE_TTL', CacheTTL.RBAC_PERMISSIONS)
        self.ttl = ttl

    @property
    def enabled(self) -> bool:
        return bool(self.ttl)

    def key_for(self, user_id, tenant_id=None) -> str:
        generation = CacheService.get(CacheKeys.RBAC_GENERATION, 0)
        user_version = CacheService.get(
            CacheKeys.format(CacheKeys.USER_VERSION, user_id=user_id), 0
        )
        return CacheKeys.format(
            CacheKeys.USER_PERMISSIONS,
            generation=generation,
            user_version=user_version,
            tenant_id=tenant_id or 'global',
            user_id=user_id,
        )

    def get(self, key: str) -> Optional[FrozenSet[str]]:
        """Cached permission set, or None on a miss or once an assignment behind it expired."""
        if not self.enabled:
            return None
        cached = CacheService.get(key)
        if cached is None:
            return None
        expires_at = cached.get('expires_at')
        if expires_at is not None and timezone.now().timestamp() >= expires_at:
            return None
        return frozenset(cached['permissions'])

    def set(self, key: str, permissions, expires_at: Optional[datetime] = None) -> None:
        """
        Store a permission set.

        Args:
            key: Key from ``key_for()``, taken before the permissions were read
            permissions: Effective permission codes
            expires_at: Earliest expiry among the assignments granting them
        """
        if not self.enabled:
            return
        ttl = self.ttl
        if expires_at is not None:
            remaining = int((expires_at - timezone.now()).total_seconds())
            if remaining <= 0:
                return
            ttl = min(ttl, remaining)
        CacheService.set(key, {
            'permissions': sorted(permissions),
            'expires_at': expires_at.timestamp() if expires_at is not None else None,
        }, ttl)

    def invalidate_user(self, user_id) -> None:
        """Drop every cached permission set of one user, in all tenants."""
        CacheService.incr(CacheKeys.format(CacheKeys.USER_VERSION, user_id=user_id))
        logger.debug(f"Invalidated permission cache for user {user_id}")

    def invalidate_all(self) -> None:
        """Drop every cached permission set."""
        CacheService.incr(CacheKeys.RBAC_GENERATION)
        logger.debug("Invalidated permission cache generation")
