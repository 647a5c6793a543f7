"""
Audit events for role and assignment changes.

The audit trail lives in an external sink. Emission is best-effort: a
failing sink is logged and never rolls back or fails the mutation.
"""
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from django.conf import settings
from django.utils import timezone
from django.utils.module_loading import import_string

from apps.core.logging import PIIMasker

logger = logging.getLogger(__name__)


ROLE_CREATED = 'role_created'
ROLE_UPDATED = 'role_updated'
ROLE_DELETED = 'role_deleted'
ROLE_ASSIGNED = 'role_assigned'
ROLE_REVOKED = 'role_revoked'
ROLE_ASSIGNMENT_EXPIRED = 'role_assignment_expired'
SYSTEM_ROLES_INITIALIZED = 'system_roles_initialized'


@dataclass
class AuditEvent:
    """A single role or assignment change."""

    action: str
    target_type: str
    target_id: Optional[str] = None
    actor_id: Optional[str] = None
    tenant_id: Optional[str] = None
    reason: str = ''
    changes: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=timezone.now)

    def as_dict(self):
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat()
        for key in ('target_id', 'actor_id', 'tenant_id'):
            if data[key] is not None:
                data[key] = str(data[key])
        return data


class AuditSink:
    """Destination for audit events."""

    def emit(self, event: AuditEvent) -> None:
        raise NotImplementedError


class LoggingAuditSink(AuditSink):
    """Writes audit events as structured records on the ``rbac.audit`` logger."""

    logger_name = 'rbac.audit'

    def emit(self, event: AuditEvent) -> None:
        data = event.as_dict()
        data['reason'] = PIIMasker.mask_text(data['reason'])
        logging.getLogger(self.logger_name).info(
            f"RBAC audit: {event.action} {event.target_type} {data['target_id']}",
            extra={'audit': data, 'tenant_id': data['tenant_id']},
        )


def get_audit_sink() -> AuditSink:
    """Instantiate the sink class named by ``RBAC_AUDIT_SINK``."""
    path = getattr(settings, 'RBAC_AUDIT_SINK', None)
    if not path:
        return LoggingAuditSink()
    return import_string(path)()


def emit_audit_event(sink: Optional[AuditSink], event: AuditEvent) -> bool:
    """
    Deliver an event to the sink, swallowing sink failures.

    Returns:
        True if the sink accepted the event, False otherwise
    """
    if sink is None:
        return False
    try:
        sink.emit(event)
        return True
    except Exception as e:
        logger.error(
            f"Failed to emit audit event: {str(e)}",
            extra={
                'action': event.action,
                'target_type': event.target_type,
                'target_id': str(event.target_id) if event.target_id else None,
                'tenant_id': event.tenant_id,
            },
            exc_info=True
        )
        return False
