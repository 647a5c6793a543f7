"""
Pytest configuration and fixtures.
"""
import uuid

import pytest
from django.conf import settings
import django
from django.core.management import call_command


def pytest_configure(config):
    """Configure Django settings for tests."""
    settings.DATABASES['default'] = {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
        'ATOMIC_REQUESTS': False,
    }
    settings.CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'rbac-tests',
        }
    }
    django.setup()


@pytest.fixture(scope='session')
def django_db_setup(django_db_setup, django_db_blocker):
    """Set up test database with migrations."""
    with django_db_blocker.unblock():
        call_command('migrate', '--run-syncdb', verbosity=0)


@pytest.fixture(autouse=True)
def clear_cache():
    """Start every test with an empty permission cache."""
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


class RecordingAuditSink:
    """Audit sink that keeps emitted events in memory."""

    def __init__(self):
        self.events = []

    def emit(self, event):
        self.events.append(event)

    def actions(self):
        return [event.action for event in self.events]


@pytest.fixture
def audit_sink():
    """Return an in-memory audit sink."""
    return RecordingAuditSink()


@pytest.fixture
def rbac_service(db, audit_sink):
    """RBAC service wired with the default catalog and seeded system roles."""
    from apps.rbac.cache import PermissionCache
    from apps.rbac.catalog import DEFAULT_CATALOG
    from apps.rbac.directory import AllowAllUserDirectory
    from apps.rbac.services import RBACService

    service = RBACService(
        catalog=DEFAULT_CATALOG,
        audit_sink=audit_sink,
        user_directory=AllowAllUserDirectory(),
        permission_cache=PermissionCache(ttl=300),
    )
    service.initialize_system_roles()
    audit_sink.events.clear()
    return service


@pytest.fixture
def system_roles(rbac_service):
    """Seeded system roles keyed by name."""
    from apps.rbac.models import Role
    return {role.name: role for role in Role.objects.system()}


@pytest.fixture
def tenant_a():
    """Tenant id for isolation tests."""
    return uuid.uuid4()


@pytest.fixture
def tenant_b():
    """Another tenant id for isolation tests."""
    return uuid.uuid4()


@pytest.fixture
def user_id():
    """Id of a user managed by the external directory."""
    return uuid.uuid4()


@pytest.fixture
def admin_id():
    """Id of the user performing administrative actions."""
    return uuid.uuid4()
