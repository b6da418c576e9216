from .user import User
from .pet import Pet
from .appointment import Appointment
from .audit_log import AuditLog

__all__ = ["User", "Pet", "Appointment", "AuditLog"]
