"""
Donor eligibility API
Lets booking front-ends explain in advance why a date would be refused
"""
from datetime import datetime

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from donation_app.errors import NotFoundError
from donation_app.extensions import db
from donation_app.models import Donor
from donation_app.services import earliest_booking_date, validate_donation_rules
from donation_app.utils.datetime_utils import parse_datetime

donor_bp = Blueprint('donor', __name__, url_prefix='/api/donors')


@donor_bp.route('/<donor_hash_id>/eligibility', methods=['GET'])
@jwt_required()
def check_eligibility(donor_hash_id):
    """
    Query params:
        donation_type: whole_blood | plasma (default: whole_blood)
        date: candidate date/time, ISO 8601 (default: now)
    """
    donor = db.session.get(Donor, donor_hash_id)
    if not donor:
        raise NotFoundError('donor', donor_hash_id)

    donation_type = request.args.get('donation_type', 'whole_blood', type=str)
    date_arg = request.args.get('date')
    candidate = parse_datetime(date_arg, 'date') if date_arg else datetime.utcnow()

    result = validate_donation_rules(
        donation_type,
        candidate,
        donor.last_donation_date,
        donor.total_donations_this_year,
    )
    earliest = earliest_booking_date(donor.last_donation_date, donation_type)

    data = result.to_dict()
    data.update({
        'donor_hash_id': donor.donor_hash_id,
        'donor_active': donor.is_active,
        'candidate_datetime': candidate.isoformat(),
        'earliest_booking_date': earliest.isoformat() if earliest else None,
    })
    return jsonify({'success': True, 'data': data}), 200
