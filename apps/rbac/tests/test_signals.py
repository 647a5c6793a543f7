"""
Tests for RBAC signals.

Tests automatic system role seeding after migrate.
"""
import pytest
from django.apps import apps

from apps.rbac.catalog import DEFAULT_CATALOG
from apps.rbac.models import Role
from apps.rbac.signals import seed_system_roles_after_migrate


@pytest.mark.django_db
class TestSeedOnMigrate:
    """Test the post_migrate receiver."""

    def test_system_roles_present_after_migrate(self):
        names = set(Role.objects.system().values_list('name', flat=True))

        assert names == set(DEFAULT_CATALOG.system_role_names())

    def test_receiver_seeds_for_rbac_app(self):
        Role.objects.system().delete()

        seed_system_roles_after_migrate(sender=apps.get_app_config('rbac'), verbosity=0)

        assert Role.objects.system().count() == len(DEFAULT_CATALOG.system_roles)

    def test_receiver_ignores_other_apps(self):
        Role.objects.system().delete()

        seed_system_roles_after_migrate(sender=apps.get_app_config('core'))

        assert not Role.objects.system().exists()

    def test_receiver_disabled_by_setting(self, settings):
        settings.RBAC_SEED_ON_MIGRATE = False
        Role.objects.system().delete()

        seed_system_roles_after_migrate(sender=apps.get_app_config('rbac'))

        assert not Role.objects.system().exists()
