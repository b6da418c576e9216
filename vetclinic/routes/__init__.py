from .appointment import appointment_bp
from .health import health_bp

__all__ = ['appointment_bp', 'health_bp']
