from .eligibility_service import (
    DONATION_RULES,
    EligibilityResult,
    validate_donation_rules,
    check_donor_eligibility,
    earliest_booking_date,
)

from .capacity_service import (
    CapacityResult,
    check_capacity,
    ensure_capacity,
)

from .donor_stats_service import record_completion

from .realtime_service import EventBroadcaster, broadcaster

from .appointment_service import AppointmentService

__all__ = [
    # Eligibility
    "DONATION_RULES",
    "EligibilityResult",
    "validate_donation_rules",
    "check_donor_eligibility",
    "earliest_booking_date",
    # Capacity
    "CapacityResult",
    "check_capacity",
    "ensure_capacity",
    # Donor statistics
    "record_completion",
    # Real-time events
    "EventBroadcaster",
    "broadcaster",
    # Lifecycle
    "AppointmentService",
]
