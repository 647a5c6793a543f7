"""
RBAC models for multi-tenant role-based access control.

Implements:
- Role (system roles are global; custom roles are scoped to one tenant
  or, when created without a tenant, global)
- UserRole (user -> role assignment with an active/revoked lifecycle)

Users and tenants are owned by external services, so both are referenced
by UUID rather than by foreign key.
"""
import logging
from django.db import models
from django.db.models import Q
from django.utils import timezone
from apps.core.models import BaseModel

logger = logging.getLogger(__name__)


def normalize_permissions(codes):
    """De-duplicate permission codes and return them sorted."""
    return sorted({code.strip() for code in codes or [] if code and code.strip()})


def normalize_role_names(names):
    """De-duplicate role names, keeping first-seen order."""
    normalized = []
    for name in names or []:
        name = name.strip() if name else ''
        if name and name not in normalized:
            normalized.append(name)
    return normalized


class RoleQuerySet(models.QuerySet):
    """QuerySet with tenant scoping helpers."""

    def active(self):
        return self.filter(is_active=True)

    def system(self):
        return self.filter(role_type=Role.TYPE_SYSTEM)

    def custom(self):
        return self.filter(role_type=Role.TYPE_CUSTOM)

    def global_scope(self):
        """Roles without a tenant (system roles and global custom roles)."""
        return self.filter(tenant_id__isnull=True)

    def for_tenant(self, tenant_id):
        """Roles owned by one tenant. Global roles are not included."""
        return self.filter(tenant_id=tenant_id)

    def in_scope(self, tenant_id):
        """Roles owned by the tenant (or global ones when tenant_id is None)."""
        if tenant_id is None:
            return self.global_scope()
        return self.for_tenant(tenant_id)

    def search(self, text):
        """Case-insensitive substring match on name, display name and description."""
        if not text:
            return self
        return self.filter(
            Q(name__icontains=text)
            | Q(display_name__icontains=text)
            | Q(description__icontains=text)
        )


class RoleManager(models.Manager.from_queryset(RoleQuerySet)):
    """Manager for Role queries with tenant scoping."""

    def by_name(self, name, tenant_id=None):
        """Find a role by exact name within a single scope."""
        return self.in_scope(tenant_id).filter(name=name).first()

    def resolve_by_name(self, name, tenant_id=None):
        """
        Resolve a role name the way inheritance does.

        Looks in the tenant scope first and falls back to global roles,
        so a tenant's custom role may inherit from a system role but
        never from another tenant's custom role.
        """
        if tenant_id is not None:
            role = self.by_name(name, tenant_id)
            if role is not None:
                return role
        return self.by_name(name, None)

    def system_role_names(self):
        return set(self.system().values_list('name', flat=True))


class Role(BaseModel):
    """
    A named bundle of permissions, optionally extending other roles by name.

    System roles are seeded at bootstrap and can never be changed through
    the service. Custom roles are created, updated and deleted by tenants.
    """

    TYPE_SYSTEM = 'system'
    TYPE_CUSTOM = 'custom'
    TYPE_CHOICES = [
        (TYPE_SYSTEM, 'System'),
        (TYPE_CUSTOM, 'Custom'),
    ]

    name = models.CharField(
        max_length=100,
        help_text="Role name, unique within its scope (e.g., 'SENIOR_AGENT')"
    )
    display_name = models.CharField(
        max_length=255,
        blank=True,
        help_text="Human-readable name"
    )
    description = models.TextField(
        blank=True,
        help_text="Role description"
    )
    role_type = models.CharField(
        max_length=10,
        choices=TYPE_CHOICES,
        default=TYPE_CUSTOM,
        db_index=True,
        help_text="System roles are immutable"
    )
    permissions = models.JSONField(
        default=list,
        blank=True,
        help_text="Permission codes granted directly by this role"
    )
    inherited_roles = models.JSONField(
        default=list,
        blank=True,
        help_text="Names of roles whose effective permissions this role inherits"
    )
    tenant_id = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Owning tenant (null for system and global roles)"
    )
    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Inactive roles grant nothing and are hidden from search"
    )
    created_by = models.UUIDField(
        null=True,
        blank=True,
        help_text="User who created the role"
    )
    updated_by = models.UUIDField(
        null=True,
        blank=True,
        help_text="User who last updated the role"
    )

    objects = RoleManager()

    class Meta:
        db_table = 'roles'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['name'],
                condition=Q(tenant_id__isnull=True),
                name='uniq_global_role_name',
            ),
            models.UniqueConstraint(
                fields=['tenant_id', 'name'],
                condition=Q(tenant_id__isnull=False),
                name='uniq_tenant_role_name',
            ),
        ]
        indexes = [
            models.Index(fields=['tenant_id', 'is_active']),
            models.Index(fields=['role_type', 'name']),
        ]

    def __str__(self):
        scope = self.tenant_id or 'global'
        return f"{self.name} ({self.role_type}, {scope})"

    @property
    def is_system(self):
        return self.role_type == self.TYPE_SYSTEM

    def save(self, *args, **kwargs):
        self.permissions = normalize_permissions(self.permissions)
        self.inherited_roles = normalize_role_names(self.inherited_roles)
        super().save(*args, **kwargs)


class UserRoleQuerySet(models.QuerySet):
    """QuerySet for assignment lookups."""

    def active(self):
        return self.filter(is_active=True)

    def unexpired(self, now=None):
        now = now or timezone.now()
        return self.filter(Q(expires_at__isnull=True) | Q(expires_at__gt=now))

    def effective(self, now=None):
        """Active assignments that have not expired and still point at a role."""
        return self.active().unexpired(now).filter(role__isnull=False)

    def for_user(self, user_id):
        return self.filter(user_id=user_id)

    def for_tenant_context(self, tenant_id):
        """
        Assignments that apply in a tenant context.

        Tenant-less assignments apply everywhere; with no tenant given,
        every assignment of the user applies.
        """
        if tenant_id is None:
            return self
        return self.filter(Q(tenant_id=tenant_id) | Q(tenant_id__isnull=True))

    def expired(self, now=None):
        now = now or timezone.now()
        return self.active().filter(expires_at__isnull=False, expires_at__lte=now)


class UserRoleManager(models.Manager.from_queryset(UserRoleQuerySet)):
    """Manager for UserRole queries."""

    def active_assignment(self, user_id, role_id):
        """The single active assignment of a role to a user, if any."""
        return self.active().filter(user_id=user_id, role_id=role_id).first()

    def revoke_all_for_role(self, role, revoked_by=None, reason=''):
        """Soft-revoke every active assignment of a role. Returns the row count."""
        return self.active().filter(role=role).update(
            is_active=False,
            revoked_at=timezone.now(),
            revoked_by=revoked_by,
            reason=reason,
            updated_at=timezone.now(),
        )


class UserRole(BaseModel):
    """
    Assignment of a role to a user.

    Revocation deactivates the row instead of deleting it so the audit
    trail of who held which role, and when, is preserved. When the role
    itself is deleted the row survives with ``role`` set to null and the
    name kept in ``role_name``.
    """

    user_id = models.UUIDField(
        db_index=True,
        help_text="User holding the role"
    )
    role = models.ForeignKey(
        Role,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assignments',
        help_text="Assigned role (null once the role is deleted)"
    )
    role_name = models.CharField(
        max_length=100,
        help_text="Role name at assignment time"
    )
    tenant_id = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Tenant context of the assignment"
    )
    is_active = models.BooleanField(
        default=True,
        help_text="False once revoked or expired"
    )

    # Audit fields
    assigned_at = models.DateTimeField(
        default=timezone.now,
        help_text="When role was assigned"
    )
    assigned_by = models.UUIDField(
        null=True,
        blank=True,
        help_text="User who assigned this role"
    )
    revoked_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the assignment was revoked"
    )
    revoked_by = models.UUIDField(
        null=True,
        blank=True,
        help_text="User who revoked the assignment"
    )
    reason = models.TextField(
        blank=True,
        help_text="Reason given for the last assignment change"
    )
    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Assignment grants nothing after this time"
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Additional context metadata"
    )

    objects = UserRoleManager()

    class Meta:
        db_table = 'user_roles'
        ordering = ['-assigned_at']
        constraints = [
            models.UniqueConstraint(
                fields=['user_id', 'role'],
                condition=Q(is_active=True),
                name='uniq_active_user_role',
            ),
        ]
        indexes = [
            models.Index(fields=['user_id', 'role', 'is_active']),
            models.Index(fields=['user_id', 'tenant_id']),
        ]

    def __str__(self):
        state = 'active' if self.is_active else 'revoked'
        return f"{self.user_id} -> {self.role_name} ({state})"

    @property
    def is_expired(self):
        return self.expires_at is not None and self.expires_at <= timezone.now()

    def revoke(self, revoked_by=None, reason=''):
        """Deactivate this assignment."""
        self.is_active = False
        self.revoked_at = timezone.now()
        self.revoked_by = revoked_by
        self.reason = reason or ''
        self.save(update_fields=['is_active', 'revoked_at', 'revoked_by', 'reason', 'updated_at'])
