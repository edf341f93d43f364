from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context
from flask_jwt_extended import jwt_required

from donation_app.errors import ValidationError
from donation_app.services import AppointmentService, broadcaster
from donation_app.utils.auth import get_booking_channel, get_current_actor_id
from donation_app.utils.datetime_utils import parse_datetime, parse_optional_datetime

appointment_bp = Blueprint('appointment', __name__, url_prefix='/api/appointments')


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


@appointment_bp.route('', methods=['GET'])
@jwt_required()
def list_appointments():
    """
    List appointments with filters and pagination.
    Query params:
        status, donation_type, center_id: exact filters (optional)
        start_date, end_date: ISO 8601 bounds on appointment time (optional)
        search: substring of donor hash ID (optional)
        sort: appointment_datetime | status | donation_type | created_at
        order: asc | desc
        page, limit: Pagination
    """
    pagination = AppointmentService().list_appointments(
        status=request.args.get('status', type=str),
        donation_type=request.args.get('donation_type', type=str),
        center_id=request.args.get('center_id', type=str),
        start=parse_optional_datetime(request.args.get('start_date'), 'start_date'),
        end=parse_optional_datetime(request.args.get('end_date'), 'end_date'),
        search=request.args.get('search', type=str),
        sort=request.args.get('sort', 'appointment_datetime', type=str),
        order=request.args.get('order', 'asc', type=str),
        page=request.args.get('page', 1, type=int),
        limit=request.args.get('limit', 20, type=int),
    )

    return jsonify({
        'success': True,
        'data': [apt.to_dict() for apt in pagination.items],
        'pagination': {
            'page': pagination.page,
            'limit': pagination.per_page,
            'total': pagination.total,
            'pages': pagination.pages,
            'has_next': pagination.has_next,
            'has_prev': pagination.has_prev
        }
    }), 200


@appointment_bp.route('/calendar', methods=['GET'])
@jwt_required()
def get_calendar():
    """
    Calendar view: appointments in [start, end), optionally for one center.
    """
    start = request.args.get('start')
    end = request.args.get('end')
    if not start or not end:
        raise ValidationError('Start and end dates are required')

    appointments = AppointmentService().calendar(
        parse_datetime(start, 'start'),
        parse_datetime(end, 'end'),
        center_id=request.args.get('center_id', type=str),
    )
    return jsonify({
        'success': True,
        'data': [
            {
                'id': apt.id,
                'donor_hash_id': apt.donor_hash_id,
                'appointment_datetime': apt.appointment_datetime.isoformat(),
                'donation_type': apt.donation_type,
                'status': apt.status,
                'donation_center_id': apt.donation_center_id,
                'center_name': apt.center.name if apt.center else None,
            }
            for apt in appointments
        ]
    }), 200


@appointment_bp.route('/stats', methods=['GET'])
@jwt_required()
def get_stats():
    """Appointment counts per status and donation type"""
    stats = AppointmentService().stats(
        start=parse_optional_datetime(request.args.get('start_date'), 'start_date'),
        end=parse_optional_datetime(request.args.get('end_date'), 'end_date'),
        center_id=request.args.get('center_id', type=str),
    )
    return jsonify({'success': True, 'data': stats}), 200


@appointment_bp.route('/stream', methods=['GET'])
@jwt_required()
def stream_appointments():
    """
    Server-Sent Events stream of appointment events for staff dashboards.
    """
    subscriber = broadcaster.subscribe()
    heartbeat = current_app.config.get('SSE_HEARTBEAT_SECONDS', 15)
    response = Response(
        stream_with_context(broadcaster.stream(subscriber, heartbeat_seconds=heartbeat)),
        mimetype='text/event-stream',
    )
    response.headers['Cache-Control'] = 'no-cache'
    response.headers['X-Accel-Buffering'] = 'no'
    return response


@appointment_bp.route('/<appointment_id>', methods=['GET'])
@jwt_required()
def get_appointment(appointment_id):
    """
    Get single appointment by ID with its donor's donation tracking.
    """
    appointment = AppointmentService().get(appointment_id)
    data = appointment.to_dict()
    data['center'] = appointment.center.to_dict() if appointment.center else None
    data['donor'] = appointment.donor.to_dict() if appointment.donor else None
    return jsonify({'success': True, 'data': data}), 200


@appointment_bp.route('', methods=['POST'])
@jwt_required()
def create_appointment():
    """
    Create new appointment
    Body: donor_hash_id, donation_center_id, appointment_datetime, donation_type, notes (optional)
    """
    data = _json_body()
    appointment = AppointmentService().create(
        donor_hash_id=data.get('donor_hash_id'),
        donation_center_id=data.get('donation_center_id'),
        appointment_datetime=data.get('appointment_datetime'),
        donation_type=data.get('donation_type'),
        actor_id=get_current_actor_id(),
        booking_channel=get_booking_channel(),
        notes=data.get('notes'),
    )
    return jsonify({
        'success': True,
        'data': appointment.to_dict(),
        'message': 'Appointment created successfully'
    }), 201


@appointment_bp.route('/<appointment_id>', methods=['PUT'])
@jwt_required()
def update_appointment(appointment_id):
    """
    Update appointment time, donation type or center
    """
    data = _json_body()
    appointment = AppointmentService().update(
        appointment_id,
        data,
        actor_id=get_current_actor_id(),
        notes=data.get('notes'),
    )
    return jsonify({
        'success': True,
        'data': appointment.to_dict(),
        'message': 'Appointment updated successfully'
    }), 200


@appointment_bp.route('/<appointment_id>/status', methods=['PATCH', 'PUT'])
@jwt_required()
def update_appointment_status(appointment_id):
    """
    Update appointment status
    Status values: scheduled, confirmed, arrived, in-progress, completed, cancelled, no-show
    """
    data = _json_body()
    new_status = data.get('status')
    if not new_status:
        raise ValidationError('Field "status" is required', field='status')

    appointment = AppointmentService().update_status(
        appointment_id,
        new_status,
        actor_id=get_current_actor_id(),
        notes=data.get('notes'),
    )
    return jsonify({
        'success': True,
        'data': appointment.to_dict(),
        'message': f'Appointment status updated to {new_status}'
    }), 200
