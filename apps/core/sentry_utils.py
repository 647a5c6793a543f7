"""
Sentry utilities for adding context and breadcrumbs.
"""
import sentry_sdk
from django.conf import settings


def set_tenant_context(tenant_id):
    """
    Tag the current Sentry scope with the tenant being authorized.

    Args:
        tenant_id: Tenant UUID (or None for global operations)
    """
    if not settings.SENTRY_DSN or tenant_id is None:
        return

    sentry_sdk.set_tag("tenant_id", str(tenant_id))


def add_breadcrumb(category, message, level="info", data=None):
    """
    Add a breadcrumb to Sentry for debugging.

    Args:
        category: Category of the breadcrumb (e.g., "rbac", "task")
        message: Human-readable message
        level: Severity level (debug, info, warning, error)
        data: Optional dictionary of additional data
    """
    if not settings.SENTRY_DSN:
        return

    sentry_sdk.add_breadcrumb(
        category=category,
        message=message,
        level=level,
        data=data or {}
    )


def capture_exception(exception, **kwargs):
    """
    Capture an exception in Sentry with optional context.

    Args:
        exception: The exception to capture
        **kwargs: Additional context to attach
    """
    if not settings.SENTRY_DSN:
        return

    with sentry_sdk.new_scope() as scope:
        for key, value in kwargs.items():
            scope.set_context(key, value)
        sentry_sdk.capture_exception(exception)


def start_transaction(name, op):
    """
    Start a Sentry transaction for performance monitoring.

    Args:
        name: Transaction name (e.g., "task.rbac.expire_role_assignments")
        op: Operation type (e.g., "celery.task")

    Returns:
        Transaction object or None if Sentry is not configured
    """
    if not settings.SENTRY_DSN:
        return None

    return sentry_sdk.start_transaction(name=name, op=op)
