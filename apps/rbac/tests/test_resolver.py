"""
Tests for role inheritance resolution.

Roles here are plain objects and the lookup is a dict, so resolution is
exercised without touching the database.
"""
import uuid
from types import SimpleNamespace

import pytest
from hypothesis import given, strategies as st, settings

from apps.rbac.resolver import RoleResolver, resolve_effective_permissions


def make_role(name, permissions=(), inherited=(), is_active=True, tenant_id=None):
    return SimpleNamespace(
        id=uuid.uuid4(),
        name=name,
        permissions=list(permissions),
        inherited_roles=list(inherited),
        is_active=is_active,
        tenant_id=tenant_id,
    )


def lookup_from(*roles):
    """Build a lookup that mirrors tenant-first, then global name resolution."""
    index = {(role.name, role.tenant_id): role for role in roles}
    calls = []

    def lookup(name, tenant_id):
        calls.append((name, tenant_id))
        if tenant_id is not None and (name, tenant_id) in index:
            return index[(name, tenant_id)]
        return index.get((name, None))

    lookup.calls = calls
    return lookup


class TestResolveEffectivePermissions:
    """Test single-role resolution."""

    def test_role_without_inheritance_returns_own_permissions(self):
        role = make_role('R', ['leads:read', 'leads:update'])

        assert resolve_effective_permissions(role, lookup_from(role)) == {'leads:read', 'leads:update'}

    def test_inheritance_is_union_of_parent_and_own(self):
        r1 = make_role('R1', ['leads:read'])
        r2 = make_role('R2', ['buyers:read'], inherited=['R1'])

        result = resolve_effective_permissions(r2, lookup_from(r1, r2))

        assert result == {'leads:read', 'buyers:read'}

    def test_transitive_inheritance(self):
        base = make_role('BASE', ['dashboard:read'])
        middle = make_role('MIDDLE', ['leads:read'], inherited=['BASE'])
        top = make_role('TOP', ['leads:delete'], inherited=['MIDDLE'])

        result = resolve_effective_permissions(top, lookup_from(base, middle, top))

        assert result == {'dashboard:read', 'leads:read', 'leads:delete'}

    def test_two_role_cycle_terminates(self):
        a = make_role('A', ['leads:read'], inherited=['B'])
        b = make_role('B', ['buyers:read'], inherited=['A'])
        lookup = lookup_from(a, b)

        assert resolve_effective_permissions(a, lookup) == {'leads:read', 'buyers:read'}
        assert resolve_effective_permissions(b, lookup) == {'leads:read', 'buyers:read'}

    def test_self_inheritance_terminates(self):
        a = make_role('A', ['leads:read'], inherited=['A'])

        assert resolve_effective_permissions(a, lookup_from(a)) == {'leads:read'}

    def test_dangling_reference_is_skipped(self):
        role = make_role('R', ['leads:read'], inherited=['MISSING'])

        assert resolve_effective_permissions(role, lookup_from(role)) == {'leads:read'}

    def test_inactive_parent_contributes_nothing(self):
        parent = make_role('P', ['leads:delete'], is_active=False)
        grandparent = make_role('G', ['system:admin'])
        parent.inherited_roles = ['G']
        child = make_role('C', ['leads:read'], inherited=['P'])

        result = resolve_effective_permissions(child, lookup_from(parent, grandparent, child))

        assert result == {'leads:read'}

    def test_inactive_root_grants_nothing(self):
        role = make_role('R', ['leads:read'], is_active=False)

        assert resolve_effective_permissions(role, lookup_from(role)) == frozenset()

    def test_tenant_role_resolves_tenant_scope_before_global(self):
        tenant = uuid.uuid4()
        global_helper = make_role('HELPER', ['system:admin'])
        tenant_helper = make_role('HELPER', ['leads:read'], tenant_id=tenant)
        child = make_role('CHILD', [], inherited=['HELPER'], tenant_id=tenant)

        result = resolve_effective_permissions(child, lookup_from(global_helper, tenant_helper, child))

        assert result == {'leads:read'}

    def test_tenant_role_falls_back_to_global_role(self):
        tenant = uuid.uuid4()
        agent = make_role('AGENT', ['leads:read'])
        child = make_role('CHILD', ['buyers:read'], inherited=['AGENT'], tenant_id=tenant)

        result = resolve_effective_permissions(child, lookup_from(agent, child))

        assert result == {'leads:read', 'buyers:read'}

    def test_other_tenant_role_is_never_resolved(self):
        tenant_a, tenant_b = uuid.uuid4(), uuid.uuid4()
        foreign = make_role('SALES', ['leads:delete'], tenant_id=tenant_a)
        child = make_role('CHILD', [], inherited=['SALES'], tenant_id=tenant_b)

        assert resolve_effective_permissions(child, lookup_from(foreign, child)) == frozenset()

    def test_depth_cap_stops_expansion(self):
        base = make_role('BASE', ['dashboard:read'])
        middle = make_role('MIDDLE', ['leads:read'], inherited=['BASE'])
        top = make_role('TOP', ['leads:delete'], inherited=['MIDDLE'])
        lookup = lookup_from(base, middle, top)

        assert resolve_effective_permissions(top, lookup, max_depth=0) == {'leads:delete'}
        assert resolve_effective_permissions(top, lookup, max_depth=1) == {'leads:delete', 'leads:read'}
        assert resolve_effective_permissions(top, lookup, max_depth=2) == {
            'leads:delete', 'leads:read', 'dashboard:read'
        }

    def test_depth_cap_uses_shortest_path(self):
        c = make_role('C', ['dashboard:read'])
        b = make_role('B', ['buyers:read'], inherited=['C'])
        a = make_role('A', ['leads:read'], inherited=['B'])
        r = make_role('R', ['leads:delete'], inherited=['A', 'B'])

        result = resolve_effective_permissions(r, lookup_from(a, b, c, r), max_depth=2)

        assert result == {'leads:delete', 'leads:read', 'buyers:read', 'dashboard:read'}

    def test_depth_cap_counts_from_every_root(self):
        c = make_role('C', ['dashboard:read'])
        b = make_role('B', ['buyers:read'], inherited=['C'])
        a = make_role('A', ['leads:read'], inherited=['B'])

        result = RoleResolver(lookup_from(a, b, c), max_depth=1).resolve_many([a, b])

        assert result == {'leads:read', 'buyers:read', 'dashboard:read'}


class TestRoleResolver:
    """Test batch resolution."""

    def test_resolve_many_unions_roles(self):
        r1 = make_role('R1', ['leads:read'])
        r2 = make_role('R2', ['buyers:read'])

        resolver = RoleResolver(lookup_from(r1, r2))

        assert resolver.resolve_many([r1, r2]) == {'leads:read', 'buyers:read'}

    def test_resolve_many_ignores_none(self):
        r1 = make_role('R1', ['leads:read'])

        assert RoleResolver(lookup_from(r1)).resolve_many([None, r1]) == {'leads:read'}

    def test_shared_ancestor_is_looked_up_once(self):
        base = make_role('BASE', ['dashboard:read'])
        left = make_role('LEFT', ['leads:read'], inherited=['BASE'])
        right = make_role('RIGHT', ['buyers:read'], inherited=['BASE'])
        lookup = lookup_from(base, left, right)

        result = RoleResolver(lookup).resolve_many([left, right])

        assert result == {'dashboard:read', 'leads:read', 'buyers:read'}
        assert lookup.calls.count(('BASE', None)) == 1

    def test_result_is_frozenset(self):
        role = make_role('R', ['leads:read'])

        assert isinstance(RoleResolver(lookup_from(role)).resolve(role), frozenset)


# Strategies for generating random inheritance graphs
@st.composite
def role_graphs(draw):
    """Generate a list of roles with arbitrary (possibly cyclic) inheritance edges."""
    size = draw(st.integers(min_value=1, max_value=8))
    names = [f'R{i}' for i in range(size)]
    roles = []
    for i, name in enumerate(names):
        permissions = draw(st.sets(st.sampled_from([f'p{n}:read' for n in range(12)]), max_size=3))
        inherited = draw(st.lists(st.sampled_from(names + ['MISSING']), max_size=4))
        is_active = draw(st.booleans()) if i else True
        roles.append(make_role(name, sorted(permissions), inherited, is_active=is_active))
    return roles


def reachable_permissions(root, roles):
    """Reference closure: breadth-first over active roles."""
    by_name = {role.name: role for role in roles}
    seen = set()
    queue = [root]
    permissions = set()
    while queue:
        node = queue.pop(0)
        if node.name in seen or not node.is_active:
            continue
        seen.add(node.name)
        permissions.update(node.permissions)
        queue.extend(by_name[name] for name in node.inherited_roles if name in by_name)
    return permissions


class TestResolverProperties:
    """Property-based tests over random inheritance graphs."""

    @given(roles=role_graphs())
    @settings(max_examples=100, deadline=None)
    def test_resolution_terminates_and_matches_reachable_closure(self, roles):
        lookup = lookup_from(*roles)

        for role in roles:
            assert resolve_effective_permissions(role, lookup) == reachable_permissions(role, roles)

    @given(roles=role_graphs())
    @settings(max_examples=50, deadline=None)
    def test_own_permissions_always_included_for_active_roles(self, roles):
        lookup = lookup_from(*roles)

        for role in roles:
            if role.is_active:
                assert set(role.permissions) <= resolve_effective_permissions(role, lookup)
