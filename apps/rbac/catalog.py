"""
Permission catalog and system role definitions.

The catalog is the single source of truth for valid permission codes
(``resource:action``) and for the five built-in system roles. It is an
immutable value passed to RBACService at construction; use
``get_default_catalog()`` to obtain the one configured in settings.
"""
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from django.conf import settings
from django.utils.module_loading import import_string


@dataclass(frozen=True)
class PermissionDef:
    """Static permission definition."""

    code: str
    label: str
    description: str

    @property
    def category(self) -> str:
        return self.code.split(':', 1)[0]


@dataclass(frozen=True)
class SystemRoleDef:
    """Static system role definition seeded at bootstrap."""

    name: str
    display_name: str
    description: str
    permissions: Tuple[str, ...]


@dataclass(frozen=True)
class PermissionCatalog:
    """Read-only registry of permission definitions and system role seeds."""

    permissions: Tuple[PermissionDef, ...]
    system_roles: Tuple[SystemRoleDef, ...]
    _by_code: Dict[str, PermissionDef] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        by_code = {definition.code: definition for definition in self.permissions}
        if len(by_code) != len(self.permissions):
            raise ValueError("Permission catalog contains duplicate codes")

        seen_roles = set()
        for role in self.system_roles:
            if role.name in seen_roles:
                raise ValueError(f"Duplicate system role definition: {role.name}")
            seen_roles.add(role.name)
            unknown = [code for code in role.permissions if code not in by_code]
            if unknown:
                raise ValueError(
                    f"System role {role.name} references unknown permissions: {', '.join(unknown)}"
                )

        object.__setattr__(self, '_by_code', by_code)

    def is_known_permission(self, code: str) -> bool:
        return code in self._by_code

    def unknown_permissions(self, codes: Iterable[str]) -> List[str]:
        """Return codes missing from the catalog, in input order, without repeats."""
        unknown = []
        for code in codes:
            if code not in self._by_code and code not in unknown:
                unknown.append(code)
        return unknown

    def codes(self) -> FrozenSet[str]:
        return frozenset(self._by_code)

    def describe(self, code: str) -> Optional[PermissionDef]:
        return self._by_code.get(code)

    def by_category(self) -> Dict[str, List[PermissionDef]]:
        grouped: Dict[str, List[PermissionDef]] = {}
        for definition in self.permissions:
            grouped.setdefault(definition.category, []).append(definition)
        return grouped

    def system_role(self, name: str) -> Optional[SystemRoleDef]:
        for role in self.system_roles:
            if role.name == name:
                return role
        return None

    def system_role_names(self) -> Tuple[str, ...]:
        return tuple(role.name for role in self.system_roles)


SUPER_ADMIN = 'SUPER_ADMIN'
TENANT_ADMIN = 'TENANT_ADMIN'
MANAGER = 'MANAGER'
AGENT = 'AGENT'
VIEWER = 'VIEWER'


PERMISSIONS: Tuple[PermissionDef, ...] = (
    # Leads
    PermissionDef('leads:create', 'Create Leads', 'Create new leads manually'),
    PermissionDef('leads:read', 'View Leads', 'View leads and lead details'),
    PermissionDef('leads:update', 'Update Leads', 'Edit lead details and status'),
    PermissionDef('leads:delete', 'Delete Leads', 'Delete leads'),
    PermissionDef('leads:assign', 'Assign Leads', 'Assign leads to agents and queues'),
    PermissionDef('leads:import', 'Import Leads', 'Bulk import leads from files'),
    PermissionDef('leads:export', 'Export Leads', 'Export leads to files'),

    # Buyers
    PermissionDef('buyers:create', 'Create Buyers', 'Register new buyers'),
    PermissionDef('buyers:read', 'View Buyers', 'View buyers and buyer details'),
    PermissionDef('buyers:update', 'Update Buyers', 'Edit buyer details'),
    PermissionDef('buyers:delete', 'Delete Buyers', 'Delete buyers'),

    # Users
    PermissionDef('users:create', 'Create Users', 'Provision new user accounts'),
    PermissionDef('users:read', 'View Users', 'View user accounts'),
    PermissionDef('users:update', 'Update Users', 'Edit user accounts'),
    PermissionDef('users:delete', 'Delete Users', 'Remove user accounts'),

    # Roles
    PermissionDef('roles:create', 'Create Roles', 'Define custom roles'),
    PermissionDef('roles:read', 'View Roles', 'View role definitions and assignments'),
    PermissionDef('roles:update', 'Update Roles', 'Edit custom roles'),
    PermissionDef('roles:delete', 'Delete Roles', 'Delete custom roles'),
    PermissionDef('roles:assign', 'Assign Roles', 'Assign and revoke roles for users'),

    # Analytics
    PermissionDef('analytics:read', 'View Analytics', 'View analytics and reports'),
    PermissionDef('analytics:export', 'Export Analytics', 'Export analytics reports'),

    # Communications
    PermissionDef('communications:read', 'View Communications', 'View communication history'),
    PermissionDef('communications:send', 'Send Communications', 'Send emails, SMS and calls to leads'),

    # Dashboard
    PermissionDef('dashboard:read', 'View Dashboard', 'Access the dashboard'),

    # System
    PermissionDef('system:settings', 'System Settings', 'Change platform-wide settings'),
    PermissionDef('system:admin', 'System Administration', 'Platform administration across tenants'),
)


def _codes(*prefixes: str, exclude: Iterable[str] = ()) -> Tuple[str, ...]:
    """Permission codes whose resource is one of ``prefixes`` ('*' for all)."""
    excluded = set(exclude)
    return tuple(
        definition.code for definition in PERMISSIONS
        if ('*' in prefixes or definition.category in prefixes) and definition.code not in excluded
    )


SYSTEM_ROLES: Tuple[SystemRoleDef, ...] = (
    SystemRoleDef(
        name=SUPER_ADMIN,
        display_name='Super Administrator',
        description='Full system access with all permissions',
        permissions=_codes('*'),
    ),
    SystemRoleDef(
        name=TENANT_ADMIN,
        display_name='Tenant Administrator',
        description='Tenant-level administrator with full tenant access',
        permissions=_codes('*', exclude=('system:settings', 'system:admin', 'users:create', 'users:delete')),
    ),
    SystemRoleDef(
        name=MANAGER,
        display_name='Manager',
        description='Team manager with lead and user management capabilities',
        permissions=_codes('leads', 'buyers', 'analytics', 'communications', 'dashboard') + (
            'users:read', 'users:update', 'roles:read', 'roles:assign',
        ),
    ),
    SystemRoleDef(
        name=AGENT,
        display_name='Agent',
        description='Standard agent with lead and buyer access',
        permissions=(
            'leads:create', 'leads:read', 'leads:update',
            'buyers:create', 'buyers:read',
            'communications:read', 'communications:send',
            'dashboard:read',
        ),
    ),
    SystemRoleDef(
        name=VIEWER,
        display_name='Viewer',
        description='Read-only access to leads and analytics',
        permissions=('leads:read', 'buyers:read', 'analytics:read', 'dashboard:read'),
    ),
)


DEFAULT_CATALOG = PermissionCatalog(permissions=PERMISSIONS, system_roles=SYSTEM_ROLES)


def get_default_catalog() -> PermissionCatalog:
    """Return the catalog named by ``RBAC_PERMISSION_CATALOG``."""
    path = getattr(settings, 'RBAC_PERMISSION_CATALOG', None)
    if not path:
        return DEFAULT_CATALOG
    return import_string(path)
