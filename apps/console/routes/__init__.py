"""Console Routes - Import all blueprints here."""

from .residents import residents_bp
from .activity_logs import activity_logs_bp
from .benefits import benefits_bp
from .programs import programs_bp
from .notifications import notifications_bp

__all__ = [
    'residents_bp',
    'activity_logs_bp',
    'benefits_bp',
    'programs_bp',
    'notifications_bp',
]
