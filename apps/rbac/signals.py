"""
RBAC signals for automatic system role seeding.

Seeds the catalog's system roles after ``migrate`` so a fresh database
can answer permission checks without a separate bootstrap step.
"""
import logging

from django.conf import settings
from django.db.models.signals import post_migrate
from django.dispatch import receiver

logger = logging.getLogger(__name__)


@receiver(post_migrate, dispatch_uid='rbac_seed_system_roles')
def seed_system_roles_after_migrate(sender, **kwargs):
    """
    Seed system roles once the rbac tables exist.

    Disabled with ``RBAC_SEED_ON_MIGRATE = False``. Seeding is idempotent,
    so running ``migrate`` repeatedly is safe.
    """
    if getattr(sender, 'name', None) != 'apps.rbac':
        return
    if not getattr(settings, 'RBAC_SEED_ON_MIGRATE', True):
        logger.debug("System role seeding on migrate is disabled")
        return

    # Import here to avoid circular imports
    from apps.rbac.services import get_rbac_service

    created = get_rbac_service().initialize_system_roles()
    if created and kwargs.get('verbosity', 1) >= 1:
        logger.info(
            f"Seeded {len(created)} system roles after migrate",
            extra={'roles_created': [role.name for role in created]}
        )
