from .donation_center import DonationCenter, DEFAULT_CENTER_CAPACITY
from .donor import Donor
from .appointment import Appointment, APPOINTMENT_STATUSES, RELEASED_STATUSES, DONATION_TYPES
from .audit_log import AuditLog

__all__ = [
    "DonationCenter",
    "Donor",
    "Appointment",
    "AuditLog",
    "APPOINTMENT_STATUSES",
    "RELEASED_STATUSES",
    "DONATION_TYPES",
    "DEFAULT_CENTER_CAPACITY",
]
