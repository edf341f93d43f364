from donation_app.extensions import db
from .base import TimestampMixin


class Donor(db.Model, TimestampMixin):
    """
    Donor record as seen by the scheduling core.

    The donor is identified only by an irreversible hash; personal data lives in
    the donor-management component and is never loaded here. This core writes
    just ``last_donation_date`` and ``total_donations_this_year``.
    """
    __tablename__ = 'donors'

    donor_hash_id = db.Column(db.String(128), primary_key=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    preferred_language = db.Column(db.String(10))

    # Donation tracking (owned by the donor statistics updater)
    last_donation_date = db.Column(db.Date, nullable=True)
    total_donations_this_year = db.Column(db.Integer, default=0, nullable=False)

    __table_args__ = (
        db.CheckConstraint('total_donations_this_year >= 0', name='ck_donors_total_donations_non_negative'),
    )

    appointments = db.relationship('Appointment', backref='donor', lazy='dynamic')

    def to_dict(self):
        return {
            'donor_hash_id': self.donor_hash_id,
            'is_active': self.is_active,
            'preferred_language': self.preferred_language,
            'last_donation_date': self.last_donation_date.isoformat() if self.last_donation_date else None,
            'total_donations_this_year': self.total_donations_this_year,
        }

    def __repr__(self):
        return f"<Donor {self.donor_hash_id}>"
