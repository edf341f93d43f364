# tests/conftest.py
from datetime import datetime

import pytest
from flask_jwt_extended import create_access_token

from donation_app import create_app
from donation_app.extensions import db as _db
from donation_app.models import Appointment, DonationCenter, Donor
from donation_app.services import AppointmentService


class RecordingAuditSink:
    """Collects audit entries instead of writing them to the database."""

    def __init__(self):
        self.entries = []

    def record(self, actor_id, action, resource_type, resource_id, details=None, outcome="success"):
        self.entries.append({
            "actor_id": actor_id,
            "action": action,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "details": details,
            "outcome": outcome,
        })


class RecordingBroadcaster:
    """Collects published events in order."""

    def __init__(self):
        self.events = []

    def publish(self, event_type, payload):
        self.events.append((event_type, payload))
        return 1

    def of_type(self, event_type):
        return [payload for kind, payload in self.events if kind == event_type]


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    token = create_access_token(identity="staff-42")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def audit_sink():
    return RecordingAuditSink()


@pytest.fixture
def events():
    return RecordingBroadcaster()


@pytest.fixture
def service(app, audit_sink, events):
    return AppointmentService(audit_sink=audit_sink, broadcaster=events)


@pytest.fixture
def center(db):
    center = DonationCenter(name="Centro Trasfusionale Milano", city="Milano", capacity=10)
    db.session.add(center)
    db.session.commit()
    return center


@pytest.fixture
def make_donor(db):
    def _make_donor(donor_hash_id="a3f1c9e07b", last_donation_date=None, total_donations_this_year=0,
                    is_active=True):
        donor = Donor(
            donor_hash_id=donor_hash_id,
            last_donation_date=last_donation_date,
            total_donations_this_year=total_donations_this_year,
            is_active=is_active,
        )
        db.session.add(donor)
        db.session.commit()
        return donor
    return _make_donor


@pytest.fixture
def donor(make_donor):
    """First-time donor"""
    return make_donor()


@pytest.fixture
def make_appointment(db):
    """Insert an appointment directly, bypassing eligibility and capacity checks."""
    counter = {"n": 0}

    def _make_appointment(center, when, status="scheduled", donor_hash_id=None, donation_type="whole_blood"):
        counter["n"] += 1
        if donor_hash_id is None:
            donor_hash_id = f"filler-donor-{counter['n']}"
            db.session.add(Donor(donor_hash_id=donor_hash_id))
        appointment = Appointment(
            donor_hash_id=donor_hash_id,
            donation_center_id=center.id,
            appointment_datetime=when,
            donation_type=donation_type,
            status=status,
        )
        db.session.add(appointment)
        db.session.commit()
        return appointment
    return _make_appointment


@pytest.fixture
def slot():
    return datetime(2024, 6, 1, 10, 0)
