from .appointment import appointment_bp
from .donor import donor_bp
from .health import health_bp

__all__ = ['appointment_bp', 'donor_bp', 'health_bp']
