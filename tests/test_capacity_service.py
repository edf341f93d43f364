# tests/test_capacity_service.py
from datetime import timedelta

import pytest

from donation_app.errors import CapacityConflict, NotFoundError
from donation_app.models import DonationCenter
from donation_app.services.capacity_service import check_capacity, ensure_capacity


def fill(make_appointment, center, when, count, status="scheduled"):
    return [make_appointment(center, when, status=status) for _ in range(count)]


def test_full_center_rejects_eleventh_booking(center, make_appointment, slot):
    fill(make_appointment, center, slot, 10)

    result = check_capacity(center.id, slot)

    assert not result.available
    assert result.occupied == 10
    assert result.capacity == 10

    with pytest.raises(CapacityConflict) as exc:
        ensure_capacity(center.id, slot)
    assert exc.value.occupied == 10
    assert exc.value.capacity == 10


def test_cancelled_and_no_show_release_their_slot(center, make_appointment, slot):
    fill(make_appointment, center, slot, 9)
    make_appointment(center, slot, status="cancelled")
    make_appointment(center, slot, status="no-show")

    result = check_capacity(center.id, slot)

    assert result.available
    assert result.occupied == 9


@pytest.mark.parametrize("status", ["confirmed", "arrived", "in-progress", "completed"])
def test_active_statuses_occupy_a_slot(center, make_appointment, slot, status):
    make_appointment(center, slot, status=status)

    assert check_capacity(center.id, slot).occupied == 1


def test_window_is_inclusive_at_thirty_minutes(center, make_appointment, slot):
    make_appointment(center, slot - timedelta(minutes=30))
    make_appointment(center, slot + timedelta(minutes=30))
    make_appointment(center, slot - timedelta(minutes=31))
    make_appointment(center, slot + timedelta(minutes=31))

    assert check_capacity(center.id, slot).occupied == 2


def test_other_centers_do_not_count(db, center, make_appointment, slot):
    other = DonationCenter(name="Centro Trasfusionale Roma", capacity=10)
    db.session.add(other)
    db.session.commit()
    fill(make_appointment, other, slot, 10)

    assert check_capacity(center.id, slot).occupied == 0


def test_excluded_appointment_is_not_counted(center, make_appointment, slot):
    own = make_appointment(center, slot)
    make_appointment(center, slot)

    assert check_capacity(center.id, slot, exclude_appointment_id=own.id).occupied == 1


def test_capacity_defaults_to_ten(db, make_appointment, slot):
    center = DonationCenter(name="Unconfigured Center", capacity=None)
    db.session.add(center)
    db.session.commit()
    fill(make_appointment, center, slot, 9)

    result = check_capacity(center.id, slot)
    assert result.capacity == 10
    assert result.available


def test_small_center(db, make_appointment, slot):
    center = DonationCenter(name="Mobile Unit", capacity=2)
    db.session.add(center)
    db.session.commit()
    fill(make_appointment, center, slot, 2)

    result = check_capacity(center.id, slot, lock=True)
    assert result.to_dict() == {"available": False, "occupied": 2, "capacity": 2}


def test_unknown_center(app, slot):
    with pytest.raises(NotFoundError):
        check_capacity("3b0e2d7c-0000-0000-0000-000000000000", slot)
