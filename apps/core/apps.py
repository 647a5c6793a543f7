from django.apps import AppConfig
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
import logging

logger = logging.getLogger(__name__)


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.core'
    verbose_name = 'Core'

    def ready(self):
        """
        Perform startup validation checks when Django initializes.

        Catches misconfigured RBAC settings before the first
        authorization check runs.
        """
        self._validate_rbac_settings()

    def _validate_rbac_settings(self):
        """Validate numeric RBAC settings."""
        ttl = getattr(settings, 'RBAC_PERMISSION_CACHE_TTL', 0)
        if ttl is None or ttl < 0:
            raise ImproperlyConfigured(
                "RBAC_PERMISSION_CACHE_TTL must be zero (disabled) or a positive "
                f"number of seconds. Current value: {ttl!r}"
            )

        max_depth = getattr(settings, 'RBAC_MAX_INHERITANCE_DEPTH', None)
        if max_depth is not None and max_depth < 0:
            raise ImproperlyConfigured(
                "RBAC_MAX_INHERITANCE_DEPTH must be unset or a non-negative integer. "
                f"Current value: {max_depth!r}"
            )

        logger.debug(
            "RBAC settings validated",
            extra={
                'permission_cache_ttl': ttl,
                'max_inheritance_depth': max_depth,
            }
        )
