"""
Error taxonomy raised by the RBAC service.

All errors are recoverable at the caller's discretion. Permission
resolution itself never raises; only administrative operations do.
"""


class RBACError(Exception):
    """Base class for RBAC service errors."""

    code = 'rbac_error'

    def __init__(self, detail, **context):
        super().__init__(detail)
        self.detail = detail
        self.context = context

    def __str__(self):
        return self.detail


class ValidationError(RBACError):
    """Unknown permission, unresolvable inherited role, or malformed input."""

    code = 'invalid'


class ConflictError(RBACError):
    """Duplicate role name or duplicate active assignment."""

    code = 'conflict'


class ImmutableEntityError(RBACError):
    """Mutation or deletion attempted on a system role."""

    code = 'immutable'


class NotFoundError(RBACError):
    """Role, user, or assignment not found (or not visible to the tenant)."""

    code = 'not_found'
