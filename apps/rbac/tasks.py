"""
Celery tasks for RBAC maintenance.
"""
import logging

from celery import shared_task

from apps.core.tasks import LoggedTask

logger = logging.getLogger(__name__)


@shared_task(base=LoggedTask, name='rbac.expire_role_assignments')
def expire_role_assignments():
    """
    Deactivate role assignments whose expiry has passed.

    Scheduled by Celery beat. Expired assignments already grant nothing;
    this task makes the revocation explicit, invalidates cached
    permissions and emits audit events.

    Returns:
        dict: Number of assignments expired
    """
    # Import here to avoid loading models at worker import time
    from apps.rbac.services import get_rbac_service

    expired = get_rbac_service().expire_assignments()
    return {'expired': expired}
