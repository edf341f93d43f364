"""
Capacity Service
Prevents more simultaneous appointments at a center than it can handle
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from donation_app.errors import CapacityConflict, NotFoundError
from donation_app.extensions import db
from donation_app.models import Appointment, DonationCenter, RELEASED_STATUSES

logger = logging.getLogger(__name__)

CONTENTION_WINDOW = timedelta(minutes=30)


@dataclass
class CapacityResult:
    available: bool
    occupied: int
    capacity: int

    def to_dict(self):
        return {'available': self.available, 'occupied': self.occupied, 'capacity': self.capacity}


def get_center(center_id: str, lock: bool = False) -> DonationCenter:
    """
    Load a donation center.

    With ``lock=True`` the row is selected FOR UPDATE, so concurrent bookings for
    the same center queue behind this transaction until it commits.
    """
    query = db.session.query(DonationCenter).filter(DonationCenter.id == center_id)
    if lock:
        query = query.with_for_update()
    center = query.first()
    if not center:
        raise NotFoundError('donation_center', center_id)
    return center


def count_occupied(center_id: str, candidate_datetime: datetime,
                   exclude_appointment_id: Optional[str] = None) -> int:
    """Appointments holding a slot within the contention window around ``candidate_datetime``"""
    window_start = candidate_datetime - CONTENTION_WINDOW
    window_end = candidate_datetime + CONTENTION_WINDOW

    query = db.session.query(db.func.count(Appointment.id)).filter(
        Appointment.donation_center_id == center_id,
        Appointment.appointment_datetime >= window_start,
        Appointment.appointment_datetime <= window_end,
        Appointment.status.notin_(RELEASED_STATUSES),
    )
    if exclude_appointment_id:
        query = query.filter(Appointment.id != exclude_appointment_id)
    return query.scalar() or 0


def check_capacity(
    center_id: str,
    candidate_datetime: datetime,
    exclude_appointment_id: Optional[str] = None,
    lock: bool = False,
) -> CapacityResult:
    """
    Check whether the center has room at ``candidate_datetime``

    Args:
        center_id: Donation center ID
        candidate_datetime: requested slot (naive UTC)
        exclude_appointment_id: appointment being moved, not counted against itself
        lock: hold the center row until the caller's transaction ends

    Returns:
        CapacityResult: availability with occupied/capacity counts
    """
    center = get_center(center_id, lock=lock)
    capacity = center.effective_capacity
    occupied = count_occupied(center_id, candidate_datetime, exclude_appointment_id)
    return CapacityResult(available=occupied < capacity, occupied=occupied, capacity=capacity)


def ensure_capacity(
    center_id: str,
    candidate_datetime: datetime,
    exclude_appointment_id: Optional[str] = None,
    lock: bool = True,
) -> CapacityResult:
    """check_capacity that raises CapacityConflict when the slot is full"""
    result = check_capacity(center_id, candidate_datetime, exclude_appointment_id, lock=lock)
    if not result.available:
        logger.info(
            "Center %s full at %s: %s/%s",
            center_id, candidate_datetime.isoformat(), result.occupied, result.capacity
        )
        raise CapacityConflict(result.occupied, result.capacity, center_id=center_id)
    return result
