# tests/test_donor_stats_service.py
from datetime import date, datetime

from sqlalchemy import update

from donation_app.models import Donor
from donation_app.services.donor_stats_service import record_completion


def test_completion_sets_date_and_increments(db, make_donor):
    make_donor("d-100", last_donation_date=date(2023, 11, 2), total_donations_this_year=2)

    assert record_completion("d-100", datetime(2024, 6, 1, 16, 45)) is True
    db.session.commit()

    db.session.expire_all()
    donor = db.session.get(Donor, "d-100")
    assert donor.last_donation_date == date(2024, 6, 1)
    assert donor.total_donations_this_year == 3


def test_other_fields_untouched(db, make_donor):
    donor = make_donor("d-101", is_active=True)
    donor.preferred_language = "it"
    db.session.commit()

    record_completion("d-101", datetime(2024, 6, 1, 8, 0))
    db.session.commit()

    db.session.expire_all()
    donor = db.session.get(Donor, "d-101")
    assert donor.preferred_language == "it"
    assert donor.is_active is True


def test_nothing_committed_by_itself(db, make_donor):
    make_donor("d-102", total_donations_this_year=0)

    record_completion("d-102", datetime(2024, 6, 1, 8, 0))
    db.session.rollback()

    assert db.session.get(Donor, "d-102").total_donations_this_year == 0


def test_unknown_donor(app):
    assert record_completion("nobody", datetime(2024, 6, 1)) is False


def test_increment_is_applied_by_the_database(db, make_donor):
    donor = make_donor("d-103", total_donations_this_year=1)
    assert donor.total_donations_this_year == 1

    # A completion committed by another request; the loaded object still says 1
    db.session.execute(
        update(Donor).where(Donor.donor_hash_id == "d-103").values(total_donations_this_year=2),
        execution_options={"synchronize_session": False},
    )

    record_completion("d-103", datetime(2024, 6, 1, 8, 0))
    db.session.commit()

    db.session.expire_all()
    assert db.session.get(Donor, "d-103").total_donations_this_year == 3
