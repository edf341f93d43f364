"""
Donor statistics updated when an appointment is completed
"""
import logging
from datetime import datetime

from donation_app.models import Donor
from donation_app.utils.datetime_utils import as_date

logger = logging.getLogger(__name__)


def record_completion(donor_hash_id: str, donation_datetime: datetime) -> bool:
    """
    Advance a donor's donation tracking after a completed donation.

    Sets ``last_donation_date`` to the donation's calendar date and increments
    ``total_donations_this_year`` by one. No other donor field is touched. The
    increment is done by the database (``SET total = total + 1``) so concurrent
    completions for the same donor are never lost. The caller owns the
    transaction; nothing is committed here.

    Returns:
        bool: False if the donor record does not exist
    """
    updated = Donor.query.filter_by(donor_hash_id=donor_hash_id).update(
        {
            Donor.last_donation_date: as_date(donation_datetime),
            Donor.total_donations_this_year: Donor.total_donations_this_year + 1,
        },
        synchronize_session='fetch',
    )
    if not updated:
        logger.warning("Completed donation for unknown donor %s; statistics not updated", donor_hash_id)
        return False
    return True
