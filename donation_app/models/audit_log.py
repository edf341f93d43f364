"""
Audit log for appointment create, update and status changes.
"""
from datetime import datetime

from donation_app.extensions import db


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    actor_id = db.Column(db.String(64), nullable=True, index=True)
    action = db.Column(db.String(64), nullable=False, index=True)  # create_appointment, update_appointment, ...
    resource_type = db.Column(db.String(64), nullable=True, index=True)
    resource_id = db.Column(db.String(64), nullable=True, index=True)
    details = db.Column(db.Text, nullable=True)  # JSON
    outcome = db.Column(db.String(16), nullable=False, default="success")  # success, failure
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "actor_id": self.actor_id,
            "action": self.action,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "details": self.details,
            "outcome": self.outcome,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
