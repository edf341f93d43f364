"""
Audit logging for the appointment lifecycle.

Auditing is fire-and-forget: a failed audit write is logged and rolled back,
never propagated to the operation that triggered it.
"""
import json
import logging
from typing import Any, Optional

from donation_app.extensions import db
from donation_app.models import AuditLog

logger = logging.getLogger(__name__)


def log_audit(
    action: str,
    actor_id: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    details: Optional[dict] = None,
    outcome: str = "success",
) -> None:
    """Append an audit log entry."""
    try:
        entry = AuditLog(
            actor_id=str(actor_id) if actor_id is not None else None,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            details=json.dumps(details, default=str) if details else None,
            outcome=outcome,
        )
        db.session.add(entry)
        db.session.commit()
    except Exception as e:
        logger.warning("Audit log failed: %s", e)
        db.session.rollback()


class DatabaseAuditSink:
    """Audit sink backed by the ``audit_logs`` table."""

    def record(self, actor_id: Optional[str], action: str, resource_type: str,
               resource_id: Any, details: Optional[dict] = None, outcome: str = "success") -> None:
        log_audit(
            action,
            actor_id=actor_id,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details,
            outcome=outcome,
        )
