from flask_jwt_extended import get_jwt, get_jwt_identity


def get_current_actor_id():
    """Staff/user identifier from the access token (tokens are issued by the auth service)"""
    identity = get_jwt_identity()
    return str(identity) if identity is not None else None


def get_booking_channel(default='staff_portal'):
    """Booking channel claim carried by the token, e.g. donor_portal or voice_agent"""
    return get_jwt().get('booking_channel') or default
