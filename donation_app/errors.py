"""
Scheduling error taxonomy.

These are expected, user-facing outcomes of the scheduling core. The HTTP layer
renders them with their ``status_code``; they are not system failures.
"""


class SchedulingError(Exception):
    """Base class for expected scheduling outcomes"""
    status_code = 400

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self):
        payload = {
            'success': False,
            'error': self.message,
            'error_type': type(self).__name__,
        }
        if self.details:
            payload['details'] = self.details
        return payload


class ValidationError(SchedulingError):
    """Malformed input: unknown status, bad date, unsupported donation type"""
    status_code = 400

    def __init__(self, message, valid_values=None, field=None):
        details = {}
        if field:
            details['field'] = field
        if valid_values:
            details['valid_values'] = list(valid_values)
        super().__init__(message, details)
        self.valid_values = list(valid_values) if valid_values else []
        self.field = field


class NotFoundError(SchedulingError):
    status_code = 404

    def __init__(self, resource_type, resource_id):
        label = resource_type.replace('_', ' ').capitalize()
        super().__init__(
            f'{label} {resource_id} not found',
            {'resource_type': resource_type, 'resource_id': resource_id},
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class EligibilityViolation(SchedulingError):
    """Donor fails a spacing or annual-cap rule for the requested donation type"""
    status_code = 400

    def __init__(self, message, rule, donation_type, min_gap_days=None, days_since_last=None,
                 annual_cap=None, donations_this_year=None):
        super().__init__(message, {
            'rule': rule,
            'donation_type': donation_type,
            'min_gap_days': min_gap_days,
            'days_since_last': days_since_last,
            'annual_cap': annual_cap,
            'donations_this_year': donations_this_year,
        })
        self.rule = rule
        self.donation_type = donation_type
        self.min_gap_days = min_gap_days
        self.days_since_last = days_since_last
        self.annual_cap = annual_cap
        self.donations_this_year = donations_this_year


class CapacityConflict(SchedulingError):
    status_code = 409

    def __init__(self, occupied, capacity, center_id=None):
        super().__init__(
            f'Center is at capacity. {occupied}/{capacity} appointments scheduled.',
            {'occupied': occupied, 'capacity': capacity, 'center_id': center_id},
        )
        self.occupied = occupied
        self.capacity = capacity
        self.center_id = center_id


class InactiveDonorError(SchedulingError):
    status_code = 400

    def __init__(self, donor_hash_id):
        super().__init__('Donor account is not active', {'donor_hash_id': donor_hash_id})
        self.donor_hash_id = donor_hash_id
