"""
Celery tasks for appointment maintenance
"""
import logging
from datetime import datetime
from flask import current_app
from donation_app.extensions import celery, db
from donation_app.services import AppointmentService
from donation_app.services.realtime_service import RedisEventPublisher

logger = logging.getLogger(__name__)


def _event_publisher():
    """
    The worker has no stream clients of its own: with the relay enabled its
    events go to Redis and the web processes forward them. Otherwise they stay
    in this process and no dashboard sees them.
    """
    if current_app.config.get('EVENT_RELAY_ENABLED'):
        return RedisEventPublisher.from_url(current_app.config['EVENT_RELAY_REDIS_URL'])
    return None


@celery.task(name='tasks.mark_missed_appointments')
def mark_missed_appointments(grace_hours=None):
    """
    Mark scheduled/confirmed appointments that were never checked in as no-show,
    releasing their capacity.

    Returns:
        dict: Update results
    """
    try:
        service = AppointmentService(broadcaster=_event_publisher())
        updated_ids = service.mark_missed_appointments(grace_hours=grace_hours)
        return {
            'success': True,
            'updated_count': len(updated_ids),
            'appointment_ids': updated_ids,
            'timestamp': datetime.utcnow().isoformat()
        }

    except Exception as e:
        logger.error(f"Error marking missed appointments: {e}", exc_info=True)
        db.session.rollback()
        return {'success': False, 'error': str(e)}
