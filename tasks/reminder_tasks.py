"""
Celery tasks for appointment reminders
"""
import logging

from vetclinic.errors import SchedulingError
from vetclinic.extensions import celery
from vetclinic.scheduling.policy import SYSTEM_ACTOR

logger = logging.getLogger(__name__)


@celery.task(name='tasks.send_appointment_reminder')
def send_appointment_reminder_task(appointment_id):
    """
    Send the reminder for one confirmed appointment.

    Delivery failures are reported in the result, never retried: the
    appointment itself is already committed.

    Returns:
        dict: Send result
    """
    from vetclinic.services.appointment_service import send_reminder

    try:
        recorded = send_reminder(SYSTEM_ACTOR, appointment_id)
        return {'success': True, 'appointment_id': appointment_id, 'recorded': recorded}
    except SchedulingError as e:
        logger.warning(f"Reminder for appointment {appointment_id} not sent: {e.message}")
        return {'success': False, 'appointment_id': appointment_id, 'error': e.code}


@celery.task(name='tasks.sweep_due_reminders')
def sweep_due_reminders(lead_hours=None):
    """
    Send reminders for confirmed appointments starting within the lead window
    that have not been reminded yet.

    Returns:
        dict: Sweep results
    """
    from vetclinic.services.appointment_service import appointments_due_for_reminder

    due = appointments_due_for_reminder(lead_hours=lead_hours)
    results = [send_appointment_reminder_task(appointment_id) for appointment_id in due]
    sent = sum(1 for r in results if r['success'])

    if due:
        logger.info(f"sweep_due_reminders: {sent}/{len(due)} reminders sent")

    return {
        'success': True,
        'total': len(due),
        'sent': sent,
        'failed': [r['appointment_id'] for r in results if not r['success']],
    }
