"""
Donation Center Model
Only the fields the scheduling core reads; centers are provisioned elsewhere.
"""
import uuid

from donation_app.extensions import db
from .base import TimestampMixin

DEFAULT_CENTER_CAPACITY = 10


class DonationCenter(db.Model, TimestampMixin):
    __tablename__ = 'donation_centers'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(150), nullable=False)
    address = db.Column(db.String(255))
    city = db.Column(db.String(100))

    # Maximum simultaneous appointments in one contention window
    capacity = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, default=True, nullable=False)

    __table_args__ = (
        db.CheckConstraint('capacity IS NULL OR capacity > 0', name='ck_donation_centers_capacity_positive'),
    )

    appointments = db.relationship('Appointment', backref='center', lazy='dynamic')

    @property
    def effective_capacity(self):
        return self.capacity or DEFAULT_CENTER_CAPACITY

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'address': self.address,
            'city': self.city,
            'capacity': self.effective_capacity,
            'is_active': self.is_active,
        }

    def __repr__(self):
        return f"<DonationCenter {self.name} ({self.id})>"
