from .appointment_service import (
    create_appointment,
    list_appointments,
    get_appointment,
    update_appointment,
    cancel_appointment,
    reschedule_appointment,
    confirm_appointment,
    start_appointment,
    complete_appointment,
    mark_no_show,
    list_available_slots,
    send_reminder,
    appointments_due_for_reminder,
    appointment_stats,
)

from .pet_registry import find_pet

from .email_service import send_email, send_appointment_reminder

__all__ = [
    # Booking Service
    "create_appointment",
    "list_appointments",
    "get_appointment",
    "update_appointment",
    "cancel_appointment",
    "reschedule_appointment",
    "confirm_appointment",
    "start_appointment",
    "complete_appointment",
    "mark_no_show",
    "list_available_slots",
    "send_reminder",
    "appointments_due_for_reminder",
    "appointment_stats",
    # Pet Registry
    "find_pet",
    # Email Services
    "send_email",
    "send_appointment_reminder",
]
