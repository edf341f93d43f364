"""
Eligibility Service
Medical-safety rules deciding whether a donor may donate on a given date
"""
import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Union

from donation_app.errors import EligibilityViolation, ValidationError
from donation_app.models import DONATION_TYPES
from donation_app.utils.datetime_utils import as_date

logger = logging.getLogger(__name__)

# Volume per plasma donation is not tracked at booking time
PLASMA_LITERS_PER_DONATION = 0.65


@dataclass(frozen=True)
class DonationRule:
    min_gap_days: int
    max_donations_per_year: Optional[int] = None
    max_liters_per_year: Optional[float] = None

    @property
    def annual_cap_label(self) -> str:
        if self.max_liters_per_year is not None:
            return f'{self.max_liters_per_year:g} liters/year'
        return f'{self.max_donations_per_year} donations/year'

    def cap_reached(self, donations_this_year: int) -> bool:
        if self.max_liters_per_year is not None:
            return donations_this_year * PLASMA_LITERS_PER_DONATION >= self.max_liters_per_year
        return donations_this_year >= self.max_donations_per_year


DONATION_RULES = {
    'whole_blood': DonationRule(min_gap_days=90, max_donations_per_year=4),
    'plasma': DonationRule(min_gap_days=14, max_liters_per_year=12.0),
}

_CAP_MESSAGES = {
    'whole_blood': 'Maximum 4 whole blood donations per year allowed.',
    'plasma': 'Maximum 12 liters of plasma per year allowed.',
}

_TYPE_LABELS = {
    'whole_blood': 'whole blood',
    'plasma': 'plasma',
}


@dataclass
class EligibilityResult:
    eligible: bool
    donation_type: str
    reason: Optional[str] = None
    rule: Optional[str] = None  # min_gap or annual_cap
    min_gap_days: Optional[int] = None
    days_since_last: Optional[int] = None
    annual_cap: Optional[str] = None
    donations_this_year: int = 0

    def raise_for_violation(self) -> None:
        if self.eligible:
            return
        raise EligibilityViolation(
            self.reason,
            rule=self.rule,
            donation_type=self.donation_type,
            min_gap_days=self.min_gap_days,
            days_since_last=self.days_since_last,
            annual_cap=self.annual_cap,
            donations_this_year=self.donations_this_year,
        )

    def to_dict(self):
        return asdict(self)


def get_rule(donation_type: str) -> DonationRule:
    rule = DONATION_RULES.get(donation_type) if isinstance(donation_type, str) else None
    if rule is None:
        raise ValidationError(
            f'Unsupported donation type "{donation_type}". Must be one of: {", ".join(DONATION_TYPES)}',
            valid_values=DONATION_TYPES,
            field='donation_type',
        )
    return rule


def days_between(later: Union[date, datetime], earlier: Union[date, datetime]) -> int:
    """Whole calendar days from ``earlier`` to ``later``, time of day ignored"""
    return (as_date(later) - as_date(earlier)).days


def validate_donation_rules(
    donation_type: str,
    candidate_datetime: Union[date, datetime],
    last_donation_date: Optional[Union[date, datetime]],
    donations_this_year: int,
) -> EligibilityResult:
    """
    Check spacing and annual-cap rules for a candidate donation.

    Args:
        donation_type: whole_blood or plasma
        candidate_datetime: when the donation would take place
        last_donation_date: donor's previous donation, None for first-time donors
        donations_this_year: donations already made this calendar year

    Returns:
        EligibilityResult: eligible, or the violated rule with its values
    """
    rule = get_rule(donation_type)
    donations_this_year = donations_this_year or 0
    result = EligibilityResult(
        eligible=True,
        donation_type=donation_type,
        min_gap_days=rule.min_gap_days,
        annual_cap=rule.annual_cap_label,
        donations_this_year=donations_this_year,
    )

    # First donation, no restrictions
    if last_donation_date is None:
        return result

    days_since_last = days_between(candidate_datetime, last_donation_date)
    result.days_since_last = days_since_last

    if days_since_last < rule.min_gap_days:
        result.eligible = False
        result.rule = 'min_gap'
        result.reason = (
            f'Minimum {rule.min_gap_days} days required between {_TYPE_LABELS[donation_type]} donations. '
            f'Last donation was {days_since_last} days ago.'
        )
        return result

    if rule.cap_reached(donations_this_year):
        result.eligible = False
        result.rule = 'annual_cap'
        result.reason = _CAP_MESSAGES[donation_type]
        return result

    return result


def check_donor_eligibility(donor, donation_type: str, candidate_datetime: datetime) -> EligibilityResult:
    """Validate a donor record and raise EligibilityViolation when ineligible"""
    result = validate_donation_rules(
        donation_type,
        candidate_datetime,
        donor.last_donation_date,
        donor.total_donations_this_year,
    )
    if not result.eligible:
        logger.info(
            "Donor %s ineligible for %s on %s: %s",
            donor.donor_hash_id, donation_type, candidate_datetime.isoformat(), result.rule
        )
    result.raise_for_violation()
    return result


def earliest_booking_date(
    last_donation_date: Optional[Union[date, datetime]],
    donation_type: str,
) -> Optional[date]:
    """Earliest date the spacing rule allows, None for first-time donors"""
    rule = get_rule(donation_type)
    if last_donation_date is None:
        return None
    return as_date(last_donation_date) + timedelta(days=rule.min_gap_days)
