# tests/test_eligibility_service.py
from datetime import date, datetime, timedelta

import pytest

from donation_app.errors import EligibilityViolation, ValidationError
from donation_app.services.eligibility_service import (
    days_between,
    earliest_booking_date,
    validate_donation_rules,
)

CANDIDATE = datetime(2024, 6, 1, 10, 30)


def days_before(days):
    return CANDIDATE.date() - timedelta(days=days)


def test_whole_blood_passes_at_exactly_90_days():
    result = validate_donation_rules("whole_blood", CANDIDATE, days_before(90), 1)

    assert result.eligible
    assert result.days_since_last == 90
    assert result.reason is None


def test_whole_blood_fails_at_89_days_citing_gap():
    result = validate_donation_rules("whole_blood", CANDIDATE, days_before(89), 1)

    assert not result.eligible
    assert result.rule == "min_gap"
    assert result.min_gap_days == 90
    assert result.days_since_last == 89
    assert "90 days" in result.reason
    assert "89 days" in result.reason


def test_plasma_fails_at_13_days():
    result = validate_donation_rules("plasma", CANDIDATE, days_before(13), 2)

    assert not result.eligible
    assert result.rule == "min_gap"
    assert result.min_gap_days == 14
    assert "13 days" in result.reason


def test_plasma_passes_at_14_days():
    assert validate_donation_rules("plasma", CANDIDATE, days_before(14), 2).eligible


def test_whole_blood_annual_cap_reached_regardless_of_gap():
    result = validate_donation_rules("whole_blood", CANDIDATE, days_before(300), 4)

    assert not result.eligible
    assert result.rule == "annual_cap"
    assert result.reason == "Maximum 4 whole blood donations per year allowed."


def test_whole_blood_under_cap_with_enough_gap_passes():
    assert validate_donation_rules("whole_blood", CANDIDATE, days_before(120), 3).eligible


def test_plasma_volume_cap():
    # 19 x 0.65 L = 12.35 L, 18 x 0.65 L = 11.7 L
    capped = validate_donation_rules("plasma", CANDIDATE, days_before(30), 19)
    assert not capped.eligible
    assert capped.rule == "annual_cap"
    assert "12 liters" in capped.reason

    assert validate_donation_rules("plasma", CANDIDATE, days_before(30), 18).eligible


def test_gap_rule_is_reported_before_cap_rule():
    result = validate_donation_rules("whole_blood", CANDIDATE, days_before(10), 4)

    assert result.rule == "min_gap"


@pytest.mark.parametrize("donation_type", ["whole_blood", "plasma"])
@pytest.mark.parametrize("candidate", [datetime(2024, 1, 1), datetime(2031, 12, 31, 23, 59)])
def test_first_time_donor_always_eligible(donation_type, candidate):
    result = validate_donation_rules(donation_type, candidate, None, 0)

    assert result.eligible
    assert result.days_since_last is None


def test_day_count_ignores_time_of_day():
    last = datetime.combine(days_before(90), datetime.min.time()).replace(hour=23, minute=30)
    morning = CANDIDATE.replace(hour=7, minute=0)

    assert days_between(morning, last) == 90
    assert validate_donation_rules("whole_blood", morning, last, 0).eligible


def test_unsupported_donation_type():
    with pytest.raises(ValidationError) as exc:
        validate_donation_rules("platelets", CANDIDATE, None, 0)

    assert exc.value.valid_values == ["whole_blood", "plasma"]


@pytest.mark.parametrize("donation_type", [["plasma"], {"type": "plasma"}, 7, None])
def test_non_string_donation_type(donation_type):
    with pytest.raises(ValidationError) as exc:
        validate_donation_rules(donation_type, CANDIDATE, None, 0)

    assert exc.value.field == "donation_type"


def test_raise_for_violation_carries_rule_values():
    result = validate_donation_rules("whole_blood", CANDIDATE, days_before(89), 2)

    with pytest.raises(EligibilityViolation) as exc:
        result.raise_for_violation()

    violation = exc.value
    assert violation.rule == "min_gap"
    assert violation.min_gap_days == 90
    assert violation.days_since_last == 89
    assert violation.donations_this_year == 2
    assert violation.details["annual_cap"] == "4 donations/year"


def test_earliest_booking_date():
    assert earliest_booking_date(date(2024, 3, 1), "whole_blood") == date(2024, 5, 30)
    assert earliest_booking_date(date(2024, 3, 1), "plasma") == date(2024, 3, 15)
    assert earliest_booking_date(None, "plasma") is None
