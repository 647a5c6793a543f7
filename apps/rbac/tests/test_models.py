"""
Tests for RBAC models and managers.
"""
import uuid
from datetime import timedelta

import pytest
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.rbac.models import Role, UserRole, normalize_permissions, normalize_role_names


def create_role(name, tenant_id=None, **kwargs):
    """Helper to create a custom role."""
    return Role.objects.create(name=name, tenant_id=tenant_id, **kwargs)


def test_normalize_permissions_sorts_and_dedupes():
    assert normalize_permissions(['leads:read', 'buyers:read', 'leads:read', ' ']) == ['buyers:read', 'leads:read']


def test_normalize_role_names_keeps_first_seen_order():
    assert normalize_role_names(['B', 'A', 'B', '', 'C']) == ['B', 'A', 'C']


@pytest.mark.django_db
class TestRoleModel:
    """Test Role persistence rules."""

    def test_save_normalizes_lists(self):
        role = create_role('NORMALIZED', permissions=['leads:read', 'buyers:read', 'leads:read'],
                           inherited_roles=['AGENT', 'AGENT'])

        role.refresh_from_db()
        assert role.permissions == ['buyers:read', 'leads:read']
        assert role.inherited_roles == ['AGENT']

    def test_defaults(self):
        role = create_role('DEFAULTS')

        assert role.role_type == Role.TYPE_CUSTOM
        assert role.is_active is True
        assert not role.is_system
        assert isinstance(role.id, uuid.UUID)

    def test_global_name_unique(self):
        create_role('UNIQUE_GLOBAL')

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                create_role('UNIQUE_GLOBAL')

    def test_tenant_name_unique_within_tenant(self):
        tenant = uuid.uuid4()
        create_role('SALES', tenant_id=tenant)

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                create_role('SALES', tenant_id=tenant)

    def test_same_name_allowed_in_different_tenants(self):
        create_role('SALES', tenant_id=uuid.uuid4())
        create_role('SALES', tenant_id=uuid.uuid4())

        assert Role.objects.filter(name='SALES').count() == 2

    def test_in_scope(self):
        tenant = uuid.uuid4()
        global_role = create_role('GLOBAL_ONLY')
        tenant_role = create_role('TENANT_ONLY', tenant_id=tenant)

        assert tenant_role in Role.objects.in_scope(tenant)
        assert global_role not in Role.objects.in_scope(tenant)
        assert global_role in Role.objects.in_scope(None)
        assert tenant_role not in Role.objects.in_scope(None)

    def test_search_matches_name_display_name_and_description(self):
        create_role('ALPHA_SEARCH', display_name='First')
        create_role('BETA', display_name='Search target')
        create_role('GAMMA', description='used for search tests')
        create_role('DELTA')

        names = set(Role.objects.custom().search('search').values_list('name', flat=True))

        assert names == {'ALPHA_SEARCH', 'BETA', 'GAMMA'}

    def test_resolve_by_name_prefers_tenant_scope(self):
        tenant = uuid.uuid4()
        create_role('HELPER')
        tenant_helper = create_role('HELPER', tenant_id=tenant)

        assert Role.objects.resolve_by_name('HELPER', tenant) == tenant_helper

    def test_resolve_by_name_falls_back_to_global(self):
        global_helper = create_role('GLOBAL_HELPER')

        assert Role.objects.resolve_by_name('GLOBAL_HELPER', uuid.uuid4()) == global_helper

    def test_resolve_by_name_never_crosses_tenants(self):
        create_role('PRIVATE', tenant_id=uuid.uuid4())

        assert Role.objects.resolve_by_name('PRIVATE', uuid.uuid4()) is None
        assert Role.objects.resolve_by_name('PRIVATE') is None


@pytest.mark.django_db
class TestUserRoleModel:
    """Test UserRole lifecycle."""

    def test_one_active_assignment_per_user_and_role(self):
        role = create_role('ASSIGNABLE')
        user_id = uuid.uuid4()
        UserRole.objects.create(user_id=user_id, role=role, role_name=role.name)

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                UserRole.objects.create(user_id=user_id, role=role, role_name=role.name)

    def test_revoked_assignment_allows_reassignment(self):
        role = create_role('REASSIGNABLE')
        user_id = uuid.uuid4()
        first = UserRole.objects.create(user_id=user_id, role=role, role_name=role.name)
        first.revoke(reason='rotation')

        second = UserRole.objects.create(user_id=user_id, role=role, role_name=role.name)

        assert UserRole.objects.for_user(user_id).count() == 2
        assert list(UserRole.objects.active().for_user(user_id)) == [second]

    def test_revoke_sets_audit_fields(self):
        role = create_role('REVOCABLE')
        revoker = uuid.uuid4()
        assignment = UserRole.objects.create(user_id=uuid.uuid4(), role=role, role_name=role.name)

        assignment.revoke(revoked_by=revoker, reason='left team')
        assignment.refresh_from_db()

        assert assignment.is_active is False
        assert assignment.revoked_at is not None
        assert assignment.revoked_by == revoker
        assert assignment.reason == 'left team'

    def test_role_deletion_keeps_assignment_row(self):
        role = create_role('DOOMED')
        assignment = UserRole.objects.create(user_id=uuid.uuid4(), role=role, role_name=role.name)

        role.delete()
        assignment.refresh_from_db()

        assert assignment.role is None
        assert assignment.role_name == 'DOOMED'

    def test_effective_excludes_expired_and_inactive(self):
        role = create_role('EFFECTIVE')
        now = timezone.now()
        live = UserRole.objects.create(user_id=uuid.uuid4(), role=role, role_name=role.name,
                                       expires_at=now + timedelta(hours=1))
        expired = UserRole.objects.create(user_id=uuid.uuid4(), role=role, role_name=role.name,
                                          expires_at=now - timedelta(minutes=1))
        revoked = UserRole.objects.create(user_id=uuid.uuid4(), role=role, role_name=role.name,
                                          is_active=False)

        effective = set(UserRole.objects.effective())

        assert live in effective
        assert expired not in effective
        assert revoked not in effective
        assert expired.is_expired
        assert list(UserRole.objects.expired()) == [expired]

    def test_for_tenant_context_includes_tenantless_assignments(self):
        role = create_role('CONTEXT')
        user_id = uuid.uuid4()
        tenant_a, tenant_b = uuid.uuid4(), uuid.uuid4()
        in_a = UserRole.objects.create(user_id=user_id, role=role, role_name=role.name, tenant_id=tenant_a)
        other_role = create_role('CONTEXT_GLOBAL')
        tenantless = UserRole.objects.create(user_id=user_id, role=other_role, role_name=other_role.name)

        assert set(UserRole.objects.for_user(user_id).for_tenant_context(tenant_a)) == {in_a, tenantless}
        assert set(UserRole.objects.for_user(user_id).for_tenant_context(tenant_b)) == {tenantless}
        assert set(UserRole.objects.for_user(user_id).for_tenant_context(None)) == {in_a, tenantless}

    def test_revoke_all_for_role(self):
        role = create_role('BULK')
        for _ in range(3):
            UserRole.objects.create(user_id=uuid.uuid4(), role=role, role_name=role.name)

        revoked = UserRole.objects.revoke_all_for_role(role, reason='cleanup')

        assert revoked == 3
        assert not UserRole.objects.active().filter(role=role).exists()
