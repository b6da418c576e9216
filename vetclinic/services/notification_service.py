"""
Notification Trigger

Queues a reminder for the owner when an appointment is confirmed. Queueing is
fire-and-forget: a broker outage is logged and never undoes the confirmation.
"""
import logging

from flask import current_app
from kombu.exceptions import OperationalError

logger = logging.getLogger(__name__)


def notify_appointment_confirmed(appointment):
    """Enqueue the reminder task; call only after the confirmation is committed."""
    if not current_app.config.get('REMINDER_ON_CONFIRM', True):
        return None

    from tasks.reminder_tasks import send_appointment_reminder_task

    try:
        result = send_appointment_reminder_task.delay(appointment.id)
        logger.info("Reminder queued for appointment %s (task %s)", appointment.id, result.id)
        return result.id
    except OperationalError as e:
        logger.error("Could not queue reminder for appointment %s: %s", appointment.id, e)
        return None
