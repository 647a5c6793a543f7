"""
Celery configuration for the RBAC service.
"""
import os
from celery import Celery
from celery.signals import task_retry
import logging

# Set the default Django settings module
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('tenant_rbac')

# Load configuration from Django settings with CELERY_ prefix
app.config_from_object('django.conf:settings', namespace='CELERY')

# Auto-discover tasks in all installed apps
app.autodiscover_tasks()

logger = logging.getLogger(__name__)


@task_retry.connect
def task_retry_handler(sender=None, task_id=None, reason=None, einfo=None, **extra):
    """Log task retry."""
    logger.warning(
        f"Task retry: {sender.name}",
        extra={
            'task_id': task_id,
            'task_name': sender.name,
            'reason': str(reason)[:200] if reason else None,
            'retry_count': getattr(sender.request, 'retries', 0),
        }
    )


# Celery Beat Schedule for Periodic Tasks
app.conf.beat_schedule = {
    # Deactivate expired role assignments every 15 minutes
    'expire-role-assignments': {
        'task': 'rbac.expire_role_assignments',
        'schedule': 900.0,
    },
}

app.conf.timezone = 'UTC'
