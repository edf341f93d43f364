from .audit import log_audit, DatabaseAuditSink

from .datetime_utils import parse_datetime, parse_optional_datetime, as_date

from .auth import get_current_actor_id

__all__ = [
    # Audit
    "log_audit",
    "DatabaseAuditSink",
    # Date/time
    "parse_datetime",
    "parse_optional_datetime",
    "as_date",
    # Auth
    "get_current_actor_id",
]
