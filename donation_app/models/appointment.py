import uuid

from donation_app.extensions import db
from .base import TimestampMixin

APPOINTMENT_STATUSES = (
    'scheduled',
    'confirmed',
    'arrived',
    'in-progress',
    'completed',
    'cancelled',
    'no-show',
)

# Statuses that no longer occupy a slot at the center
RELEASED_STATUSES = ('cancelled', 'no-show')

DONATION_TYPES = ('whole_blood', 'plasma')


class Appointment(db.Model, TimestampMixin):
    __tablename__ = 'appointments'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    donor_hash_id = db.Column(db.String(128), db.ForeignKey('donors.donor_hash_id'), nullable=False, index=True)
    staff_id = db.Column(db.String(64), nullable=True)  # staff member who booked or handles it
    donation_center_id = db.Column(db.String(36), db.ForeignKey('donation_centers.id'), nullable=False, index=True)

    appointment_datetime = db.Column(db.DateTime, nullable=False, index=True)  # naive UTC
    donation_type = db.Column(db.String(20), nullable=False)
    status = db.Column(db.String(20), default='scheduled', nullable=False, index=True)

    # Provenance tag: staff_portal, donor_portal, voice_agent, ...
    booking_channel = db.Column(db.String(50), default='staff_portal')
    confirmation_sent = db.Column(db.Boolean, default=False, nullable=False)
    reminder_sent = db.Column(db.Boolean, default=False, nullable=False)

    # Set once, the first time the appointment reaches "completed"
    completed_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('scheduled', 'confirmed', 'arrived', 'in-progress', 'completed', 'cancelled', 'no-show')",
            name='ck_appointments_status',
        ),
        db.CheckConstraint("donation_type IN ('whole_blood', 'plasma')", name='ck_appointments_donation_type'),
        db.Index('ix_appointments_center_datetime', 'donation_center_id', 'appointment_datetime'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'donor_hash_id': self.donor_hash_id,
            'staff_id': self.staff_id,
            'donation_center_id': self.donation_center_id,
            'appointment_datetime': self.appointment_datetime.isoformat() if self.appointment_datetime else None,
            'donation_type': self.donation_type,
            'status': self.status,
            'booking_channel': self.booking_channel,
            'confirmation_sent': self.confirmation_sent,
            'reminder_sent': self.reminder_sent,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Appointment {self.id} - {self.donor_hash_id} on {self.appointment_datetime} ({self.status})>"
