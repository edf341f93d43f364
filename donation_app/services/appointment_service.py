"""
Appointment Service
Appointment lifecycle: booking, rescheduling and status transitions with their side effects
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from donation_app.errors import (
    CapacityConflict,
    EligibilityViolation,
    InactiveDonorError,
    NotFoundError,
    SchedulingError,
    ValidationError,
)
from donation_app.extensions import db
from donation_app.models import (
    APPOINTMENT_STATUSES,
    DONATION_TYPES,
    Appointment,
    DonationCenter,
    Donor,
)
from donation_app.services.capacity_service import ensure_capacity
from donation_app.services.donor_stats_service import record_completion
from donation_app.services.eligibility_service import check_donor_eligibility, get_rule
from donation_app.services.realtime_service import (
    APPOINTMENT_CREATED,
    APPOINTMENT_STATUS_CHANGED,
    APPOINTMENT_UPDATED,
    NEW_ARRIVAL,
    broadcaster as default_broadcaster,
)
from donation_app.utils.audit import DatabaseAuditSink
from donation_app.utils.datetime_utils import parse_datetime

logger = logging.getLogger(__name__)

RESOURCE_TYPE = 'appointments'
UPDATABLE_FIELDS = ('appointment_datetime', 'donation_type', 'donation_center_id')
SORTABLE_FIELDS = ('appointment_datetime', 'status', 'donation_type', 'created_at')
MISSABLE_STATUSES = ('scheduled', 'confirmed')
SYSTEM_ACTOR = 'system'


def validate_status(status: str) -> str:
    if status not in APPOINTMENT_STATUSES:
        raise ValidationError(
            f'Invalid status. Must be one of: {", ".join(APPOINTMENT_STATUSES)}',
            valid_values=APPOINTMENT_STATUSES,
            field='status',
        )
    return status


def validate_donation_type(donation_type: str) -> str:
    get_rule(donation_type)
    return donation_type


class AppointmentService:
    """
    Orchestrates the appointment lifecycle.

    The audit sink and the event broadcaster are injected so callers (and tests)
    can substitute their own. Neither is allowed to turn a committed booking
    into a failure: audit errors are swallowed, and events are published only
    after the database commit.
    """

    def __init__(self, audit_sink=None, broadcaster=None):
        self.audit_sink = audit_sink if audit_sink is not None else DatabaseAuditSink()
        self.broadcaster = broadcaster if broadcaster is not None else default_broadcaster

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, appointment_id: str, lock: bool = False) -> Appointment:
        """
        Load an appointment. With ``lock=True`` the row is selected FOR UPDATE and
        re-read from the database, holding it until the caller's transaction ends.
        """
        if lock:
            appointment = (
                db.session.query(Appointment)
                .filter(Appointment.id == appointment_id)
                .with_for_update()
                .populate_existing()
                .first()
            )
        else:
            appointment = db.session.get(Appointment, appointment_id)
        if not appointment:
            raise NotFoundError('appointment', appointment_id)
        return appointment

    def list_appointments(
        self,
        status: Optional[str] = None,
        donation_type: Optional[str] = None,
        center_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        search: Optional[str] = None,
        sort: str = 'appointment_datetime',
        order: str = 'asc',
        page: int = 1,
        limit: int = 20,
    ):
        """
        List appointments with filters and pagination.

        Returns:
            Flask-SQLAlchemy Pagination (items, total, pages, has_next, has_prev)
        """
        if status:
            validate_status(status)
        if donation_type:
            validate_donation_type(donation_type)
        if sort not in SORTABLE_FIELDS:
            raise ValidationError(
                f'Invalid sort field. Must be one of: {", ".join(SORTABLE_FIELDS)}',
                valid_values=SORTABLE_FIELDS,
                field='sort',
            )
        if order not in ('asc', 'desc'):
            raise ValidationError('Invalid order. Must be one of: asc, desc', valid_values=('asc', 'desc'), field='order')

        if page < 1:
            page = 1
        if limit < 1 or limit > 100:
            limit = 20

        query = self._filtered(Appointment.query, start=start, end=end, center_id=center_id)
        if status:
            query = query.filter(Appointment.status == status)
        if donation_type:
            query = query.filter(Appointment.donation_type == donation_type)
        if search:
            query = query.filter(Appointment.donor_hash_id.ilike(f'%{search}%'))

        sort_column = getattr(Appointment, sort)
        query = query.order_by(sort_column.desc() if order == 'desc' else sort_column.asc(), Appointment.id.asc())
        return query.paginate(page=page, per_page=limit, error_out=False)

    def calendar(self, start: datetime, end: datetime, center_id: Optional[str] = None) -> List[Appointment]:
        """Appointments with start <= appointment_datetime < end, in time order"""
        if start is None or end is None:
            raise ValidationError('Start and end dates are required')
        if end <= start:
            raise ValidationError('End must be after start', field='end')

        query = Appointment.query.filter(
            Appointment.appointment_datetime >= start,
            Appointment.appointment_datetime < end,
        )
        if center_id:
            query = query.filter(Appointment.donation_center_id == center_id)
        return query.order_by(Appointment.appointment_datetime.asc()).all()

    def stats(self, start: Optional[datetime] = None, end: Optional[datetime] = None,
              center_id: Optional[str] = None) -> Dict[str, int]:
        """Appointment counts in total, per status and per donation type"""
        by_status = self._filtered(
            db.session.query(Appointment.status, db.func.count(Appointment.id)),
            start=start, end=end, center_id=center_id,
        ).group_by(Appointment.status).all()
        by_type = self._filtered(
            db.session.query(Appointment.donation_type, db.func.count(Appointment.id)),
            start=start, end=end, center_id=center_id,
        ).group_by(Appointment.donation_type).all()

        status_counts = dict(by_status)
        type_counts = dict(by_type)
        result = {'total': sum(status_counts.values())}
        for status in APPOINTMENT_STATUSES:
            result[status.replace('-', '_')] = status_counts.get(status, 0)
        for donation_type in DONATION_TYPES:
            result[donation_type] = type_counts.get(donation_type, 0)
        return result

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self,
        donor_hash_id: str,
        donation_center_id: str,
        appointment_datetime: Any,
        donation_type: str,
        actor_id: Optional[str] = None,
        booking_channel: str = 'staff_portal',
        notes: Optional[str] = None,
    ) -> Appointment:
        """
        Book a new appointment in status "scheduled".

        Raises:
            ValidationError: missing/malformed fields
            NotFoundError: unknown donor or center
            InactiveDonorError: donor account disabled
            EligibilityViolation: spacing or annual-cap rule fails
            CapacityConflict: the center's contention window is full
        """
        for field, value in (('donor_hash_id', donor_hash_id), ('donation_center_id', donation_center_id)):
            if not value:
                raise ValidationError(f'Field "{field}" is required', field=field)
        validate_donation_type(donation_type)
        when = parse_datetime(appointment_datetime)

        donor = db.session.get(Donor, donor_hash_id)
        if not donor:
            raise NotFoundError('donor', donor_hash_id)
        if not donor.is_active:
            raise InactiveDonorError(donor_hash_id)

        request_details = {
            'donor_hash_id': donor_hash_id,
            'donation_center_id': donation_center_id,
            'appointment_datetime': when.isoformat(),
            'donation_type': donation_type,
            'notes': notes,
        }

        try:
            check_donor_eligibility(donor, donation_type, when)
            # Center row stays locked until commit, so the count below cannot go stale
            ensure_capacity(donation_center_id, when, lock=True)

            appointment = Appointment(
                donor_hash_id=donor_hash_id,
                staff_id=str(actor_id) if actor_id is not None else None,
                donation_center_id=donation_center_id,
                appointment_datetime=when,
                donation_type=donation_type,
                status='scheduled',
                booking_channel=booking_channel or 'staff_portal',
            )
            db.session.add(appointment)
            db.session.commit()
        except (EligibilityViolation, CapacityConflict) as e:
            db.session.rollback()
            self._audit(actor_id, 'create_appointment', None,
                        dict(request_details, reason=e.message, **e.details), outcome='failure')
            raise
        except SchedulingError:
            db.session.rollback()
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to create appointment for donor {donor_hash_id}: {e}", exc_info=True)
            raise

        logger.info(f"Appointment {appointment.id} booked at center {donation_center_id} for {when.isoformat()}")
        self._audit(actor_id, 'create_appointment', appointment.id, request_details)
        self._publish(APPOINTMENT_CREATED, {'appointment': appointment.to_dict()})
        return appointment

    def update(self, appointment_id: str, changes: Dict[str, Any], actor_id: Optional[str] = None,
               notes: Optional[str] = None) -> Appointment:
        """
        Reschedule or amend an appointment.

        Only ``appointment_datetime``, ``donation_type`` and ``donation_center_id``
        may change. A new slot (time or center) is re-checked for capacity without
        counting the appointment itself; a new type or time re-runs eligibility
        against the new type.
        """
        changes = {k: v for k, v in (changes or {}).items() if k in UPDATABLE_FIELDS and v is not None}
        if not changes:
            raise ValidationError('No fields to update', valid_values=UPDATABLE_FIELDS)

        appointment = self.get(appointment_id)
        previous = appointment.to_dict()

        new_datetime = appointment.appointment_datetime
        if 'appointment_datetime' in changes:
            new_datetime = parse_datetime(changes['appointment_datetime'])
        new_type = appointment.donation_type
        if 'donation_type' in changes:
            new_type = validate_donation_type(changes['donation_type'])
        new_center_id = changes.get('donation_center_id', appointment.donation_center_id)

        datetime_changed = new_datetime != appointment.appointment_datetime
        type_changed = new_type != appointment.donation_type
        center_changed = new_center_id != appointment.donation_center_id

        try:
            if datetime_changed or center_changed:
                ensure_capacity(new_center_id, new_datetime, exclude_appointment_id=appointment.id, lock=True)

            if datetime_changed or type_changed:
                donor = db.session.get(Donor, appointment.donor_hash_id)
                if not donor:
                    raise NotFoundError('donor', appointment.donor_hash_id)
                check_donor_eligibility(donor, new_type, new_datetime)

            if 'appointment_datetime' in changes:
                appointment.appointment_datetime = new_datetime
            if 'donation_type' in changes:
                appointment.donation_type = new_type
            if 'donation_center_id' in changes:
                appointment.donation_center_id = new_center_id
            appointment.updated_at = datetime.utcnow()
            db.session.commit()
        except (EligibilityViolation, CapacityConflict) as e:
            db.session.rollback()
            self._audit(actor_id, 'update_appointment', appointment_id,
                        {'changes': changes, 'reason': e.message, **e.details}, outcome='failure')
            raise
        except SchedulingError:
            db.session.rollback()
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to update appointment {appointment_id}: {e}", exc_info=True)
            raise

        updated = appointment.to_dict()
        self._audit(actor_id, 'update_appointment', appointment.id, {
            'changes': changes,
            'previous': previous,
            'updated': updated,
            'notes': notes,
        })
        self._publish(APPOINTMENT_UPDATED, {'appointment': updated})
        return appointment

    def update_status(self, appointment_id: str, new_status: str, actor_id: Optional[str] = None,
                      notes: Optional[str] = None) -> Appointment:
        """
        Move an appointment to ``new_status``.

        Any status may follow any other. Completion advances the donor's statistics
        once per appointment: ``completed_at`` marks that it already happened, so
        repeating "completed" (or returning to it later) does not count twice.
        The appointment row is locked for the whole change, and ``completed_at``
        is claimed with a conditional UPDATE, so two concurrent completions
        cannot both count.
        """
        validate_status(new_status)
        appointment = self.get(appointment_id, lock=True)

        previous_status = appointment.status
        donor_stats_updated = False
        now = datetime.utcnow()

        try:
            appointment.status = new_status
            appointment.updated_at = now
            if new_status == 'completed':
                claimed = Appointment.query.filter(
                    Appointment.id == appointment.id,
                    Appointment.completed_at.is_(None),
                ).update({Appointment.completed_at: now}, synchronize_session='fetch')
                if claimed:
                    donor_stats_updated = record_completion(
                        appointment.donor_hash_id, appointment.appointment_datetime
                    )
                else:
                    logger.info(
                        f"Appointment {appointment.id} already completed at "
                        f"{appointment.completed_at}; donor statistics unchanged"
                    )
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to update status of appointment {appointment_id}: {e}", exc_info=True)
            raise

        self._audit(actor_id, 'update_appointment_status', appointment.id, {
            'previous_status': previous_status,
            'new_status': new_status,
            'donor_stats_updated': donor_stats_updated,
            'notes': notes,
        })
        self._publish(APPOINTMENT_STATUS_CHANGED, {
            'appointment': appointment.to_dict(),
            'previous_status': previous_status,
        })

        if new_status == 'arrived':
            center = db.session.get(DonationCenter, appointment.donation_center_id)
            self._publish(NEW_ARRIVAL, {
                'appointment_id': appointment.id,
                'donor_hash_id': appointment.donor_hash_id,
                'center_id': appointment.donation_center_id,
                'center_name': center.name if center else 'Unknown Center',
            })
        return appointment

    def mark_missed_appointments(self, now: Optional[datetime] = None,
                                 grace_hours: Optional[int] = None) -> List[str]:
        """
        Move scheduled/confirmed appointments whose time passed more than
        ``grace_hours`` ago to "no-show", releasing their slots.
        """
        if grace_hours is None:
            grace_hours = current_app.config.get('MISSED_APPOINTMENT_GRACE_HOURS', 12)
        cutoff = (now or datetime.utcnow()) - timedelta(hours=grace_hours)

        missed = Appointment.query.filter(
            Appointment.status.in_(MISSABLE_STATUSES),
            Appointment.appointment_datetime < cutoff,
        ).order_by(Appointment.appointment_datetime.asc()).all()

        updated_ids = []
        for appointment in missed:
            self.update_status(appointment.id, 'no-show', actor_id=SYSTEM_ACTOR,
                               notes=f'No arrival recorded by {cutoff.isoformat()}')
            updated_ids.append(appointment.id)

        if updated_ids:
            logger.info(f"Marked {len(updated_ids)} missed appointment(s) as no-show")
        return updated_ids

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _filtered(query, start=None, end=None, center_id=None):
        if start:
            query = query.filter(Appointment.appointment_datetime >= start)
        if end:
            query = query.filter(Appointment.appointment_datetime <= end)
        if center_id:
            query = query.filter(Appointment.donation_center_id == center_id)
        return query

    def _audit(self, actor_id, action, resource_id, details, outcome='success'):
        try:
            self.audit_sink.record(
                actor_id=actor_id,
                action=action,
                resource_type=RESOURCE_TYPE,
                resource_id=resource_id,
                details=details,
                outcome=outcome,
            )
        except Exception as e:
            logger.warning(f"Audit sink failed for {action} on {resource_id}: {e}")

    def _publish(self, event_type, payload):
        try:
            self.broadcaster.publish(event_type, payload)
        except Exception as e:
            logger.error(f"Failed to broadcast {event_type}: {e}", exc_info=True)
            raise
