"""
Date/time parsing for appointment payloads and query strings
"""
from datetime import date, datetime, timezone
from typing import Optional, Union

from donation_app.errors import ValidationError


def parse_datetime(value: Union[str, datetime, None], field: str = 'appointment_datetime') -> datetime:
    """
    Parse an ISO 8601 date-time into a naive UTC datetime.

    Offsets (including a trailing ``Z``) are converted to UTC; naive input is
    taken as UTC already. A bare ``YYYY-MM-DD`` is midnight of that day.

    Raises:
        ValidationError: value missing or not ISO 8601
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        if not value or not isinstance(value, str):
            raise ValidationError(f'Field "{field}" is required', field=field)
        text = value.strip()
        if text.endswith('Z') or text.endswith('z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(
                f'Invalid {field} format. Use ISO 8601 (e.g., 2024-06-01T10:30:00Z)', field=field
            )

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_optional_datetime(value: Optional[str], field: str) -> Optional[datetime]:
    if value in (None, ''):
        return None
    return parse_datetime(value, field=field)


def as_date(value: Union[date, datetime]) -> date:
    """Calendar date of a date or datetime"""
    if isinstance(value, datetime):
        return value.date()
    return value
