"""
RBAC service.

Implements:
- System role bootstrap (idempotent, safe against concurrent bootstraps)
- Custom role CRUD with permission and inheritance validation
- Role assignment and revocation with an auditable lifecycle
- Effective permission queries with inheritance resolution and caching
- Tenant isolation and system role immutability
"""
import logging
import uuid
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.rbac import audit
from apps.rbac.audit import AuditEvent, emit_audit_event, get_audit_sink
from apps.rbac.cache import PermissionCache
from apps.rbac.catalog import PermissionCatalog, get_default_catalog
from apps.rbac.directory import get_user_directory
from apps.rbac.exceptions import (
    ConflictError, ImmutableEntityError, NotFoundError, ValidationError
)
from apps.rbac.models import Role, UserRole, normalize_permissions, normalize_role_names
from apps.rbac.resolver import RoleResolver, default_lookup

logger = logging.getLogger(__name__)


def _parse_uuid(value) -> Optional[uuid.UUID]:
    """Parse a UUID, returning None for malformed input."""
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None


def _require_uuid(value, label) -> Optional[uuid.UUID]:
    """Parse an optional UUID argument, raising ValidationError when malformed."""
    if value is None:
        return None
    parsed = _parse_uuid(value)
    if parsed is None:
        raise ValidationError(f"Invalid {label}: {value}", field=label)
    return parsed


def _as_code_set(permissions) -> set:
    if isinstance(permissions, str):
        return {permissions}
    return set(permissions or [])


class RBACService:
    """
    Service for RBAC operations.

    Collaborators are injected at construction so tests and alternate
    deployments can swap the permission catalog, audit sink, user
    directory and cache. ``get_rbac_service()`` wires them from settings.
    """

    ROLE_FIELDS = ('name', 'display_name', 'description', 'permissions', 'inherited_roles', 'is_active')
    SORT_FIELDS = ('created_at', 'updated_at', 'name', 'display_name')
    DEFAULT_PAGE_SIZE = 10
    MAX_PAGE_SIZE = 100

    def __init__(self, catalog: Optional[PermissionCatalog] = None, audit_sink=None,
                 user_directory=None, permission_cache: Optional[PermissionCache] = None,
                 max_inheritance_depth: Optional[int] = None):
        self.catalog = catalog if catalog is not None else get_default_catalog()
        self.audit_sink = audit_sink if audit_sink is not None else get_audit_sink()
        self.user_directory = user_directory if user_directory is not None else get_user_directory()
        self.permission_cache = permission_cache if permission_cache is not None else PermissionCache()
        if max_inheritance_depth is None:
            max_inheritance_depth = getattr(settings, 'RBAC_MAX_INHERITANCE_DEPTH', None)
        self.max_inheritance_depth = max_inheritance_depth

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    def initialize_system_roles(self) -> List[Role]:
        """
        Seed the catalog's system roles (idempotent).

        Only roles not already present as system roles are written. A
        unique-constraint violation caused by another process seeding at
        the same time counts as "already initialized".

        Returns:
            List of Role instances created by this call
        """
        existing = Role.objects.system().global_scope().values_list('name', flat=True)
        existing = set(existing)
        created = []

        for definition in self.catalog.system_roles:
            if definition.name in existing:
                continue
            try:
                with transaction.atomic():
                    role = Role.objects.create(
                        name=definition.name,
                        display_name=definition.display_name,
                        description=definition.description,
                        role_type=Role.TYPE_SYSTEM,
                        permissions=list(definition.permissions),
                        inherited_roles=[],
                        tenant_id=None,
                        is_active=True,
                    )
            except IntegrityError:
                clash = Role.objects.by_name(definition.name)
                if clash is not None and not clash.is_system:
                    logger.warning(
                        f"Global custom role {definition.name} blocks system role seeding",
                        extra={'role_id': str(clash.pk)}
                    )
                else:
                    logger.info(f"System role {definition.name} was initialized concurrently")
                continue
            created.append(role)

        if created:
            self.permission_cache.invalidate_all()
            names = [role.name for role in created]
            logger.info(
                f"Initialized system roles: {', '.join(names)}",
                extra={'roles_created': names}
            )
            emit_audit_event(self.audit_sink, AuditEvent(
                action=audit.SYSTEM_ROLES_INITIALIZED,
                target_type='Role',
                changes={'roles_created': names},
            ))

        return created

    # ------------------------------------------------------------------
    # Role CRUD
    # ------------------------------------------------------------------

    def create_role(self, data: Dict[str, Any], tenant_id=None, performed_by=None) -> Role:
        """
        Create a custom role.

        Args:
            data: Role fields (name required; display_name, description,
                permissions, inherited_roles, is_active optional)
            tenant_id: Owning tenant, or None for a global custom role
            performed_by: User creating the role

        Raises:
            ValidationError: Unknown fields or permissions, or an inherited
                role that does not resolve to an active role in scope
            ConflictError: Name already used in the scope or by a system role
        """
        tenant_id = _require_uuid(tenant_id, 'tenant_id')
        performed_by = _require_uuid(performed_by, 'performed_by')
        data = self._clean_role_data(data, partial=False)

        name = data['name']
        self._check_name_available(name, tenant_id)

        permissions = normalize_permissions(data.get('permissions'))
        self._validate_permissions(permissions)

        inherited_roles = normalize_role_names(data.get('inherited_roles'))
        self._validate_inherited_roles(inherited_roles, tenant_id)

        try:
            with transaction.atomic():
                role = Role.objects.create(
                    name=name,
                    display_name=data.get('display_name') or '',
                    description=data.get('description') or '',
                    role_type=Role.TYPE_CUSTOM,
                    permissions=permissions,
                    inherited_roles=inherited_roles,
                    tenant_id=tenant_id,
                    is_active=data.get('is_active', True),
                    created_by=performed_by,
                    updated_by=performed_by,
                )
        except IntegrityError as e:
            raise ConflictError(f"Role with name '{name}' already exists", name=name) from e

        logger.info(
            f"Role created: {role.name}",
            extra={'role_id': str(role.pk), 'tenant_id': tenant_id, 'performed_by': str(performed_by)}
        )
        self._role_changed(audit.ROLE_CREATED, role, performed_by, changes={
            'name': role.name,
            'permissions': role.permissions,
            'inherited_roles': role.inherited_roles,
        })
        return role

    def get_role(self, role_id, tenant_id=None) -> Role:
        """
        Get a role by id.

        With a tenant, another tenant's custom role is reported as missing.
        Global roles are visible to every tenant.

        Raises:
            NotFoundError: Role does not exist or is not visible
        """
        parsed = _parse_uuid(role_id)
        if parsed is None:
            raise NotFoundError("Role not found", role_id=str(role_id))
        try:
            role = Role.objects.get(pk=parsed)
        except (Role.DoesNotExist, DjangoValidationError):
            raise NotFoundError("Role not found", role_id=str(role_id))

        tenant_id = _require_uuid(tenant_id, 'tenant_id')
        if tenant_id is not None and role.tenant_id is not None and role.tenant_id != tenant_id:
            raise NotFoundError("Role not found", role_id=str(role_id))
        return role

    def update_role(self, role_id, patch: Dict[str, Any], performed_by=None, tenant_id=None) -> Role:
        """
        Update a custom role.

        Raises:
            NotFoundError: Role does not exist or is not visible
            ImmutableEntityError: Role is a system role
            ValidationError: Unknown fields or permissions, or an added
                inherited role that does not resolve
            ConflictError: Renamed to a name already in use
        """
        role = self.get_role(role_id, tenant_id)
        if role.is_system:
            raise ImmutableEntityError("System roles cannot be modified", role_id=str(role.pk))

        performed_by = _require_uuid(performed_by, 'performed_by')
        patch = self._clean_role_data(patch, partial=True)

        if 'name' in patch and patch['name'] != role.name:
            self._check_name_available(patch['name'], role.tenant_id, exclude_id=role.pk)

        if 'permissions' in patch:
            patch['permissions'] = normalize_permissions(patch['permissions'])
            self._validate_permissions(patch['permissions'])

        if 'inherited_roles' in patch:
            patch['inherited_roles'] = normalize_role_names(patch['inherited_roles'])
            added = [name for name in patch['inherited_roles'] if name not in role.inherited_roles]
            self._validate_inherited_roles(added, role.tenant_id)

        changes = {}
        for field_name, value in patch.items():
            if field_name in ('display_name', 'description'):
                value = value or ''
            current = getattr(role, field_name)
            if current != value:
                changes[field_name] = {'from': current, 'to': value}
                setattr(role, field_name, value)

        if not changes:
            return role

        role.updated_by = performed_by
        try:
            with transaction.atomic():
                role.save()
        except IntegrityError as e:
            raise ConflictError(f"Role with name '{role.name}' already exists", name=role.name) from e

        if 'name' in changes:
            logger.warning(
                f"Role renamed from {changes['name']['from']} to {role.name}; "
                f"roles inheriting the old name no longer resolve it",
                extra={'role_id': str(role.pk), 'tenant_id': role.tenant_id}
            )
        logger.info(
            f"Role updated: {role.name}",
            extra={'role_id': str(role.pk), 'tenant_id': role.tenant_id, 'fields': sorted(changes)}
        )
        self._role_changed(audit.ROLE_UPDATED, role, performed_by, changes=changes)
        return role

    def delete_role(self, role_id, performed_by=None, tenant_id=None) -> int:
        """
        Delete a custom role.

        Every active assignment of the role is revoked (deactivated, not
        deleted) before the role row itself is removed.

        Returns:
            Number of assignments revoked

        Raises:
            NotFoundError: Role does not exist or is not visible
            ImmutableEntityError: Role is a system role
        """
        role = self.get_role(role_id, tenant_id)
        if role.is_system:
            raise ImmutableEntityError("System roles cannot be deleted", role_id=str(role.pk))

        performed_by = _require_uuid(performed_by, 'performed_by')
        role_pk, role_name, role_tenant = role.pk, role.name, role.tenant_id

        with transaction.atomic():
            affected_users = set(
                UserRole.objects.active().filter(role=role).values_list('user_id', flat=True)
            )
            revoked = UserRole.objects.revoke_all_for_role(
                role,
                revoked_by=performed_by,
                reason=f"Role {role_name} deleted",
            )
            role.delete()

        for user_id in affected_users:
            self.permission_cache.invalidate_user(user_id)
        self.permission_cache.invalidate_all()

        logger.info(
            f"Role deleted: {role_name}",
            extra={'role_id': str(role_pk), 'tenant_id': role_tenant, 'revoked_assignments': revoked}
        )
        emit_audit_event(self.audit_sink, AuditEvent(
            action=audit.ROLE_DELETED,
            target_type='Role',
            target_id=role_pk,
            actor_id=performed_by,
            tenant_id=role_tenant,
            changes={'name': role_name, 'revoked_assignments': revoked},
        ))
        return revoked

    def search_roles(self, filters: Optional[Dict[str, Any]] = None, tenant_id=None) -> Dict[str, Any]:
        """
        Search and filter roles in one scope.

        Args:
            filters: Optional keys ``search`` (substring of name, display
                name or description), ``type``, ``is_active`` (default
                True; None for both), ``page``, ``limit``, ``sort_by``,
                ``sort_order``
            tenant_id: Tenant whose roles to search; None searches global roles

        Returns:
            Dict with roles, total, page and limit
        """
        filters = dict(filters or {})
        tenant_id = _require_uuid(tenant_id, 'tenant_id')

        page = self._positive_int(filters.get('page'), 'page', default=1)
        limit = min(self._positive_int(filters.get('limit'), 'limit', default=self.DEFAULT_PAGE_SIZE),
                    self.MAX_PAGE_SIZE)

        sort_by = filters.get('sort_by') or 'created_at'
        if sort_by not in self.SORT_FIELDS:
            raise ValidationError(f"Cannot sort roles by '{sort_by}'", field='sort_by')
        sort_order = (filters.get('sort_order') or 'desc').lower()
        if sort_order not in ('asc', 'desc'):
            raise ValidationError(f"Invalid sort order '{sort_order}'", field='sort_order')

        queryset = Role.objects.in_scope(tenant_id).search(filters.get('search'))

        role_type = filters.get('type')
        if role_type:
            if role_type not in (Role.TYPE_SYSTEM, Role.TYPE_CUSTOM):
                raise ValidationError(f"Invalid role type '{role_type}'", field='type')
            queryset = queryset.filter(role_type=role_type)

        is_active = filters.get('is_active', True)
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active)

        ordering = sort_by if sort_order == 'asc' else f'-{sort_by}'
        total = queryset.count()
        offset = (page - 1) * limit
        roles = list(queryset.order_by(ordering, 'name')[offset:offset + limit])

        return {
            'roles': roles,
            'total': total,
            'page': page,
            'limit': limit,
        }

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------

    def assign_role_to_user(self, user_id, role_id, tenant_id=None, performed_by=None,
                            reason: str = '', expires_at=None,
                            metadata: Optional[Dict[str, Any]] = None) -> UserRole:
        """
        Assign a role to a user.

        A custom tenant role can only be assigned in its own tenant; when
        no tenant is given the role's tenant is used. System and global
        roles can be assigned in any tenant context.

        Raises:
            NotFoundError: Role or user does not exist
            ValidationError: Inactive role, tenant mismatch, or an expiry
                in the past
            ConflictError: User already holds the role actively
        """
        user_id = _require_uuid(user_id, 'user_id')
        if user_id is None:
            raise ValidationError("user_id is required", field='user_id')
        tenant_id = _require_uuid(tenant_id, 'tenant_id')
        performed_by = _require_uuid(performed_by, 'performed_by')

        role = self.get_role(role_id)
        if not self.user_directory.user_exists(user_id):
            raise NotFoundError("User not found", user_id=str(user_id))
        if not role.is_active:
            raise ValidationError("Cannot assign inactive role", role_id=str(role.pk))

        if role.tenant_id is not None:
            if tenant_id is None:
                tenant_id = role.tenant_id
            elif tenant_id != role.tenant_id:
                raise ValidationError(
                    "Role belongs to a different tenant",
                    role_id=str(role.pk), tenant_id=str(tenant_id),
                )

        if expires_at is not None and expires_at <= timezone.now():
            raise ValidationError("expires_at must be in the future", field='expires_at')

        with transaction.atomic():
            existing = UserRole.objects.select_for_update().active().filter(
                user_id=user_id, role=role
            ).first()
            if existing is not None:
                if not existing.is_expired:
                    raise ConflictError(
                        "User already has this role assigned",
                        user_id=str(user_id), role_id=str(role.pk),
                    )
                existing.revoke(reason='expired')

        try:
            with transaction.atomic():
                assignment = UserRole.objects.create(
                    user_id=user_id,
                    role=role,
                    role_name=role.name,
                    tenant_id=tenant_id,
                    is_active=True,
                    assigned_by=performed_by,
                    reason=reason or '',
                    expires_at=expires_at,
                    metadata=metadata or {},
                )
        except IntegrityError as e:
            raise ConflictError(
                "User already has this role assigned",
                user_id=str(user_id), role_id=str(role.pk),
            ) from e

        self.permission_cache.invalidate_user(user_id)
        logger.info(
            f"Role {role.name} assigned to user {user_id}",
            extra={'role_id': str(role.pk), 'user_id': str(user_id), 'tenant_id': tenant_id}
        )
        emit_audit_event(self.audit_sink, AuditEvent(
            action=audit.ROLE_ASSIGNED,
            target_type='UserRole',
            target_id=assignment.pk,
            actor_id=performed_by,
            tenant_id=tenant_id,
            reason=reason or '',
            changes={
                'user_id': str(user_id),
                'role': role.name,
                'expires_at': expires_at.isoformat() if expires_at else None,
            },
        ))
        return assignment

    def revoke_role_from_user(self, user_id, role_id, performed_by=None,
                              reason: str = '', tenant_id=None) -> UserRole:
        """
        Revoke a role from a user by deactivating the active assignment.

        With a tenant, only an assignment made in that tenant is revoked.

        Raises:
            NotFoundError: No active assignment exists
        """
        parsed_user = _parse_uuid(user_id)
        parsed_role = _parse_uuid(role_id)
        tenant_id = _require_uuid(tenant_id, 'tenant_id')
        performed_by = _require_uuid(performed_by, 'performed_by')
        if parsed_user is None or parsed_role is None:
            raise NotFoundError("Role assignment not found", user_id=str(user_id), role_id=str(role_id))

        queryset = UserRole.objects.active().filter(user_id=parsed_user, role_id=parsed_role)
        if tenant_id is not None:
            queryset = queryset.filter(tenant_id=tenant_id)

        with transaction.atomic():
            assignment = queryset.select_for_update().first()
            if assignment is None:
                raise NotFoundError(
                    "Role assignment not found",
                    user_id=str(user_id), role_id=str(role_id),
                )
            assignment.revoke(revoked_by=performed_by, reason=reason)

        self.permission_cache.invalidate_user(parsed_user)
        logger.info(
            f"Role {assignment.role_name} revoked from user {parsed_user}",
            extra={'role_id': str(parsed_role), 'user_id': str(parsed_user), 'tenant_id': assignment.tenant_id}
        )
        emit_audit_event(self.audit_sink, AuditEvent(
            action=audit.ROLE_REVOKED,
            target_type='UserRole',
            target_id=assignment.pk,
            actor_id=performed_by,
            tenant_id=assignment.tenant_id,
            reason=reason or '',
            changes={'user_id': str(parsed_user), 'role': assignment.role_name},
        ))
        return assignment

    def expire_assignments(self, now=None) -> int:
        """
        Deactivate active assignments whose expiry has passed.

        Returns:
            Number of assignments expired
        """
        now = now or timezone.now()
        expired = list(UserRole.objects.expired(now))
        if not expired:
            return 0

        UserRole.objects.filter(pk__in=[a.pk for a in expired]).update(
            is_active=False,
            revoked_at=now,
            reason='expired',
            updated_at=now,
        )

        for assignment in expired:
            self.permission_cache.invalidate_user(assignment.user_id)
            emit_audit_event(self.audit_sink, AuditEvent(
                action=audit.ROLE_ASSIGNMENT_EXPIRED,
                target_type='UserRole',
                target_id=assignment.pk,
                tenant_id=assignment.tenant_id,
                reason='expired',
                changes={'user_id': str(assignment.user_id), 'role': assignment.role_name},
            ))

        logger.info(f"Expired {len(expired)} role assignments")
        return len(expired)

    # ------------------------------------------------------------------
    # Permission queries
    # ------------------------------------------------------------------

    def get_user_roles(self, user_id, tenant_id=None) -> List[Role]:
        """
        Roles held through active, unexpired assignments.

        Inactive roles are left out. With a tenant, assignments made in
        that tenant and tenant-less assignments are considered.
        """
        parsed_user = _parse_uuid(user_id)
        if parsed_user is None:
            logger.warning(f"Permission lookup for malformed user id {user_id!r}")
            return []
        parsed_tenant = _parse_uuid(tenant_id)
        if tenant_id is not None and parsed_tenant is None:
            logger.warning(f"Permission lookup for malformed tenant id {tenant_id!r}")
            return []
        return self._roles_of(self._held_assignments(parsed_user, parsed_tenant))

    def get_user_permissions(self, user_id, tenant_id=None) -> FrozenSet[str]:
        """
        Effective permission set of a user: the union of the resolved
        permissions of every role the user holds.

        Malformed ids hold nothing. The cache key is taken before the
        assignments are read, and a cached set lives no longer than the
        earliest expiry among those assignments.
        """
        parsed_user = _parse_uuid(user_id)
        parsed_tenant = _parse_uuid(tenant_id)
        if parsed_user is None or (tenant_id is not None and parsed_tenant is None):
            logger.warning(
                f"Permission lookup for malformed ids user={user_id!r} tenant={tenant_id!r}"
            )
            return frozenset()

        cache_key = self.permission_cache.key_for(parsed_user, parsed_tenant)
        cached = self.permission_cache.get(cache_key)
        if cached is not None:
            return cached

        assignments = self._held_assignments(parsed_user, parsed_tenant)
        roles = self._roles_of(assignments)
        resolver = RoleResolver(default_lookup, max_depth=self.max_inheritance_depth)
        permissions = resolver.resolve_many(roles)

        if roles:
            expiries = [a.expires_at for a in assignments if a.expires_at is not None]
            self.permission_cache.set(cache_key, permissions, expires_at=min(expiries, default=None))
        return permissions

    def has_permission(self, user_id, permission: str, tenant_id=None) -> bool:
        """Check if user has a specific permission."""
        return permission in self.get_user_permissions(user_id, tenant_id)

    def has_any_permission(self, user_id, permissions: Iterable[str], tenant_id=None) -> bool:
        """Check if user has any of the permissions (False for an empty list)."""
        required = _as_code_set(permissions)
        if not required:
            return False
        return bool(required & self.get_user_permissions(user_id, tenant_id))

    def has_all_permissions(self, user_id, permissions: Iterable[str], tenant_id=None) -> bool:
        """Check if user has all of the permissions (True for an empty list)."""
        required = _as_code_set(permissions)
        if not required:
            return True
        return required.issubset(self.get_user_permissions(user_id, tenant_id))

    def resolve_role_permissions(self, role) -> FrozenSet[str]:
        """Effective permissions of a single role."""
        resolver = RoleResolver(default_lookup, max_depth=self.max_inheritance_depth)
        return resolver.resolve(role)

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------

    def _held_assignments(self, user_id, tenant_id) -> List[UserRole]:
        """Active, unexpired assignments of active roles in a tenant context."""
        return list(
            UserRole.objects.effective()
            .for_user(user_id)
            .for_tenant_context(tenant_id)
            .filter(role__is_active=True)
            .select_related('role')
            .order_by('assigned_at')
        )

    @staticmethod
    def _roles_of(assignments) -> List[Role]:
        roles = []
        seen = set()
        for assignment in assignments:
            if assignment.role_id not in seen:
                seen.add(assignment.role_id)
                roles.append(assignment.role)
        return roles

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    def _clean_role_data(self, data, partial: bool) -> Dict[str, Any]:
        if not isinstance(data, dict):
            raise ValidationError("Role data must be a mapping")

        unknown = sorted(set(data) - set(self.ROLE_FIELDS))
        if unknown:
            raise ValidationError(f"Unknown role fields: {', '.join(unknown)}", fields=unknown)

        cleaned = dict(data)
        if 'name' in cleaned or not partial:
            name = cleaned.get('name')
            if not isinstance(name, str) or not name.strip():
                raise ValidationError("Role name is required", field='name')
            cleaned['name'] = name.strip()

        for list_field in ('permissions', 'inherited_roles'):
            if list_field in cleaned:
                value = cleaned[list_field]
                if value is None:
                    cleaned[list_field] = []
                elif isinstance(value, str) or not all(isinstance(item, str) for item in value):
                    raise ValidationError(f"{list_field} must be a list of strings", field=list_field)
                else:
                    cleaned[list_field] = list(value)

        if 'is_active' in cleaned and not isinstance(cleaned['is_active'], bool):
            raise ValidationError("is_active must be a boolean", field='is_active')

        return cleaned

    def _check_name_available(self, name, tenant_id, exclude_id=None):
        reserved = set(self.catalog.system_role_names()) | Role.objects.system_role_names()
        if name in reserved:
            raise ConflictError(f"Role name '{name}' is reserved for a system role", name=name)

        queryset = Role.objects.in_scope(tenant_id).filter(name=name)
        if exclude_id is not None:
            queryset = queryset.exclude(pk=exclude_id)
        if queryset.exists():
            raise ConflictError(f"Role with name '{name}' already exists", name=name)

    def _validate_permissions(self, permissions):
        unknown = self.catalog.unknown_permissions(permissions)
        if unknown:
            raise ValidationError(f"Invalid permissions: {', '.join(unknown)}", permissions=unknown)

    def _validate_inherited_roles(self, names, tenant_id):
        for name in names:
            parent = Role.objects.resolve_by_name(name, tenant_id)
            if parent is None or not parent.is_active:
                raise ValidationError(f"Inherited role not found: {name}", inherited_role=name)

    @staticmethod
    def _positive_int(value, label, default):
        if value is None or value == '':
            return default
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{label} must be a positive integer", field=label)
        if number < 1:
            raise ValidationError(f"{label} must be a positive integer", field=label)
        return number

    def _role_changed(self, action, role, performed_by, changes):
        """Invalidate cached permissions and emit the audit event for a role mutation."""
        self.permission_cache.invalidate_all()
        emit_audit_event(self.audit_sink, AuditEvent(
            action=action,
            target_type='Role',
            target_id=role.pk,
            actor_id=performed_by,
            tenant_id=role.tenant_id,
            changes=changes,
        ))


def get_rbac_service() -> RBACService:
    """Build an RBACService wired from settings."""
    return RBACService()
