"""
Role inheritance resolution.

A role's effective permission set is its own permissions unioned with the
effective permissions of every role named in ``inherited_roles``,
resolved recursively. Resolution never raises for graph problems:

- traversal is breadth-first, so every role is first reached at its
  shortest inheritance distance
- cycles are cut by a visited set keyed on role id
- dangling names contribute nothing
- inactive roles contribute nothing and are not descended into
- an optional depth cap stops expansion below a given level

Role names are looked up through a ``lookup(name, tenant_id)`` callable so
the name-based reference scheme stays behind one seam.
"""
import logging
from collections import deque
from typing import Callable, Dict, FrozenSet, Iterable, Optional, Set, Tuple

logger = logging.getLogger(__name__)

RoleLookup = Callable[[str, Optional[object]], Optional[object]]


def default_lookup(name, tenant_id=None):
    """Look up a role by name in the tenant scope, falling back to global roles."""
    from apps.rbac.models import Role
    return Role.objects.resolve_by_name(name, tenant_id)


def resolve_effective_permissions(role, lookup: RoleLookup = default_lookup,
                                  max_depth: Optional[int] = None) -> FrozenSet[str]:
    """
    Compute the effective permission set of a single role.

    Args:
        role: Role instance (anything with id, name, permissions,
            inherited_roles, tenant_id and is_active attributes)
        lookup: Callable resolving ``(name, tenant_id)`` to a role or None
        max_depth: Maximum inheritance depth to expand (None = unbounded)

    Returns:
        frozenset of permission codes
    """
    return RoleResolver(lookup, max_depth=max_depth).resolve(role)


class RoleResolver:
    """
    Resolves effective permissions for one or more roles.

    Name lookups are memoized per instance, so resolving every role of a
    user reads each shared ancestor once. Create a new resolver per
    request; the memo is never invalidated.
    """

    def __init__(self, lookup: RoleLookup = default_lookup, max_depth: Optional[int] = None):
        self._lookup = lookup
        self.max_depth = max_depth
        self._memo: Dict[Tuple[str, Optional[str]], Optional[object]] = {}

    def lookup(self, name, tenant_id):
        key = (name, str(tenant_id) if tenant_id is not None else None)
        if key not in self._memo:
            self._memo[key] = self._lookup(name, tenant_id)
        return self._memo[key]

    def resolve(self, role) -> FrozenSet[str]:
        """Effective permissions of a single role."""
        return self.resolve_many([role])

    def resolve_many(self, roles: Iterable) -> FrozenSet[str]:
        """
        Union of the effective permissions of several roles.

        A single visited set spans all starting roles, so each reachable
        role contributes its own permissions exactly once. Every starting
        role sits at depth 0 and the queue is depth-ordered, so a role
        within the depth cap is never cut off by a longer path reaching it
        first.
        """
        permissions: Set[str] = set()
        visited: Set[object] = set()
        queue = deque((root, 0) for root in roles if root is not None)

        while queue:
            node, depth = queue.popleft()

            if node.id in visited:
                continue
            visited.add(node.id)

            if not node.is_active:
                logger.debug(
                    f"Skipping inactive role {node.name} during resolution",
                    extra={'role_id': str(node.id), 'tenant_id': node.tenant_id}
                )
                continue

            permissions.update(node.permissions or [])

            if self.max_depth is not None and depth >= self.max_depth:
                if node.inherited_roles:
                    logger.warning(
                        f"Inheritance depth cap reached at role {node.name}",
                        extra={
                            'role_id': str(node.id),
                            'max_depth': self.max_depth,
                            'tenant_id': node.tenant_id,
                        }
                    )
                continue

            for name in node.inherited_roles or []:
                parent = self.lookup(name, node.tenant_id)
                if parent is None:
                    logger.debug(
                        f"Role {node.name} inherits unknown role {name}",
                        extra={
                            'role_id': str(node.id),
                            'inherited_role': name,
                            'tenant_id': node.tenant_id,
                        }
                    )
                    continue
                if parent.id not in visited:
                    queue.append((parent, depth + 1))

        return frozenset(permissions)
