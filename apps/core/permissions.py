"""
DRF permission classes and decorators for RBAC permission enforcement.

This module provides:
- authorize(): framework-agnostic capability check against RBACService
- HasPermissions / HasAnyPermission: DRF permission classes
- @requires_permissions / @requires_any_permission: decorators declaring
  the permissions a view needs

Every check fails closed: missing identity, unknown users and unexpected
errors all deny access.
"""
import logging
from functools import wraps

from rest_framework.permissions import BasePermission

from apps.core.sentry_utils import add_breadcrumb, set_tenant_context

logger = logging.getLogger(__name__)


def authorize(user_id, tenant_id, permissions, require_all=True, service=None):
    """
    Decide whether a user may perform an action requiring ``permissions``.

    Args:
        user_id: Identity of the caller, resolved by the session layer
        tenant_id: Tenant the request is made in (None for platform scope)
        permissions: Permission code or iterable of codes
        require_all: True to require every permission, False for any one
        service: RBACService to consult (defaults to get_rbac_service())

    Returns:
        bool: True if access is granted
    """
    if isinstance(permissions, str):
        permissions = [permissions]
    permissions = list(permissions or [])

    if not permissions:
        return True

    if user_id is None:
        logger.warning(
            "Permission denied: no authenticated user",
            extra={'required_permissions': permissions, 'tenant_id': tenant_id}
        )
        return False

    if service is None:
        from apps.rbac.services import get_rbac_service
        service = get_rbac_service()

    try:
        if require_all:
            granted = service.has_all_permissions(user_id, permissions, tenant_id)
        else:
            granted = service.has_any_permission(user_id, permissions, tenant_id)
    except Exception as e:
        logger.error(
            f"Permission check failed, denying access: {str(e)}",
            extra={
                'user_id': str(user_id),
                'tenant_id': tenant_id,
                'required_permissions': permissions,
            },
            exc_info=True
        )
        return False

    if not granted:
        logger.warning(
            f"Permission denied: User {user_id} lacks {'all' if require_all else 'any'} of {permissions}",
            extra={
                'user_id': str(user_id),
                'tenant_id': tenant_id,
                'required_permissions': permissions,
                'require_all': require_all,
            }
        )
    return granted


def _request_user_id(request):
    user = getattr(request, 'user', None)
    if user is None or not getattr(user, 'is_authenticated', False):
        return None
    return getattr(user, 'id', None)


def _request_tenant_id(request):
    tenant = getattr(request, 'tenant', None)
    if tenant is not None:
        return getattr(tenant, 'id', tenant)
    return getattr(request, 'tenant_id', None)


class HasPermissions(BasePermission):
    """
    DRF permission class requiring every permission in ``view.required_permissions``.

    Usage in views:
        class LeadListView(APIView):
            permission_classes = [HasPermissions]
            required_permissions = ['leads:read']

    Or with the decorator:
        @requires_permissions('leads:read', 'leads:export')
        class LeadExportView(APIView):
            permission_classes = [HasPermissions]
    """

    require_all = True

    def get_service(self):
        from apps.rbac.services import get_rbac_service
        return get_rbac_service()

    def has_permission(self, request, view):
        required = getattr(view, 'required_permissions', None)
        if not required:
            return True
        if isinstance(required, str):
            required = [required]

        user_id = _request_user_id(request)
        tenant_id = _request_tenant_id(request)
        if tenant_id is not None:
            set_tenant_context(tenant_id)

        granted = authorize(
            user_id,
            tenant_id,
            sorted(required),
            require_all=self.require_all,
            service=self.get_service() if user_id is not None else None,
        )

        if not granted:
            add_breadcrumb(
                'auth',
                'Permission denied',
                level='warning',
                data={
                    'view': view.__class__.__name__,
                    'method': getattr(request, 'method', None),
                    'path': getattr(request, 'path', None),
                },
            )
        return granted


class HasAnyPermission(HasPermissions):
    """DRF permission class requiring at least one of ``view.required_permissions``."""

    require_all = False


def _declare(attribute_value):
    def decorator(view_or_method):
        if isinstance(view_or_method, type):
            view_or_method.required_permissions = attribute_value
            return view_or_method

        @wraps(view_or_method)
        def wrapped(self, request, *args, **kwargs):
            self.required_permissions = attribute_value
            return view_or_method(self, request, *args, **kwargs)

        wrapped.required_permissions = attribute_value
        return wrapped

    return decorator


def requires_permissions(*codes):
    """
    Declare permissions a view class or method needs (all of them).

    Pair with ``HasPermissions``. On a method the attribute is set on the
    view instance when the method runs.
    """
    return _declare(frozenset(codes))


def requires_any_permission(*codes):
    """Declare permissions of which a view needs at least one. Pair with ``HasAnyPermission``."""
    return _declare(frozenset(codes))
