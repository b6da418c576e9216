"""
Scheduling error taxonomy.

Every failure carries a stable ``code`` and an HTTP ``status_code`` so the
routes can serialise it without knowing which rule was violated.
"""


class SchedulingError(Exception):
    code = 'SCHEDULING_ERROR'
    status_code = 400
    default_message = 'Scheduling error'

    def __init__(self, message=None, details=None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        payload = {
            'success': False,
            'error': self.message,
            'code': self.code,
        }
        if self.details:
            payload['details'] = self.details
        return payload


class ValidationError(SchedulingError):
    code = 'VALIDATION_ERROR'
    default_message = 'Invalid appointment data'


class InvalidDate(ValidationError):
    code = 'INVALID_DATE'
    default_message = 'Invalid date'


class PastDate(InvalidDate):
    default_message = 'Appointments cannot be booked on past dates'


class SundayNotAllowed(InvalidDate):
    """Requested day is one the clinic does not operate (Sunday by default)."""
    code = 'SUNDAY_NOT_ALLOWED'
    default_message = 'The clinic is closed on that day'


class Unauthorized(SchedulingError):
    code = 'UNAUTHORIZED'
    status_code = 403
    default_message = 'Not authorized to perform this action'


class NotFound(SchedulingError):
    code = 'NOT_FOUND'
    status_code = 404
    default_message = 'Resource not found'


class AppointmentNotFound(NotFound):
    code = 'APPOINTMENT_NOT_FOUND'
    default_message = 'Appointment not found'


class PetNotFound(NotFound):
    code = 'PET_NOT_FOUND'
    default_message = 'Pet not found'


class SlotTaken(SchedulingError):
    code = 'TIME_SLOT_TAKEN'
    status_code = 409
    default_message = 'An appointment is already booked for that date and time'


class InvalidTransition(SchedulingError):
    code = 'INVALID_TRANSITION'
    status_code = 409
    default_message = 'Transition not allowed from the current status'


class InvalidStatus(InvalidTransition):
    code = 'INVALID_STATUS'
    default_message = 'Operation not allowed in the current status'


class CannotCancel(InvalidTransition):
    code = 'CANNOT_CANCEL'
    default_message = 'This appointment cannot be cancelled (at least 2 hours notice required)'


class CannotReschedule(InvalidTransition):
    code = 'CANNOT_RESCHEDULE'
    default_message = 'This appointment cannot be rescheduled'


class NotificationFailed(SchedulingError):
    code = 'NOTIFICATION_FAILED'
    status_code = 502
    default_message = 'Failed to send appointment reminder'
