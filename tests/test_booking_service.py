"""
Tests for services/appointment_service.py
"""
import unittest
from datetime import datetime, timedelta
from unittest.mock import patch

from vetclinic.errors import (
    AppointmentNotFound,
    CannotCancel,
    CannotReschedule,
    InvalidStatus,
    InvalidTransition,
    NotificationFailed,
    PastDate,
    PetNotFound,
    SlotTaken,
    SundayNotAllowed,
    Unauthorized,
    ValidationError,
)
from vetclinic.extensions import db
from vetclinic.models import Appointment, AuditLog
from vetclinic.scheduling.policy import SYSTEM_ACTOR
from vetclinic.services import appointment_service as booking

from tests.base import NOW, SATURDAY, SUNDAY, TODAY, TOMORROW, YESTERDAY, ClinicTestCase

REMINDER_PATH = 'vetclinic.services.email_service.send_appointment_reminder'


class TestCreateAppointment(ClinicTestCase):

    def test_book_then_double_book(self):
        appointment = self.book(time='09:00')

        self.assertEqual(appointment.status, 'pending')
        self.assertEqual(appointment.customer_id, self.customer.id)
        self.assertEqual(appointment.created_by_id, self.customer.id)
        self.assertEqual(appointment.date, TOMORROW)

        with self.assertRaises(SlotTaken):
            self.book(time='09:00')

    def test_time_is_zero_padded(self):
        appointment = self.book(time='9:00')

        self.assertEqual(appointment.time, '09:00')

    def test_collects_field_errors(self):
        with self.assertRaises(ValidationError) as ctx:
            booking.create_appointment(
                self.customer_actor, pet_id=self.pet.id, appointment_type='grooming',
                date='20-10-2026', time='25:00', reason='short', now=NOW,
            )

        self.assertEqual(len(ctx.exception.details), 4)

    def test_reason_must_be_text(self):
        with self.assertRaises(ValidationError) as ctx:
            booking.create_appointment(
                self.customer_actor, pet_id=self.pet.id, appointment_type='consultation',
                date=TOMORROW.isoformat(), time='09:00', reason=12345678901, now=NOW,
            )

        self.assertIn('Reason must be text', ctx.exception.details)
        self.assertEqual(Appointment.query.count(), 0)

    def test_unknown_pet(self):
        with self.assertRaises(PetNotFound):
            booking.create_appointment(
                self.customer_actor, pet_id=9999, appointment_type='consultation',
                date=TOMORROW.isoformat(), time='09:00', reason='Annual checkup visit', now=NOW,
            )

    def test_cannot_book_someone_elses_pet(self):
        with self.assertRaises(Unauthorized):
            self.book(actor=self.customer_actor, pet=self.other_pet)

    def test_veterinarian_cannot_book(self):
        with self.assertRaises(Unauthorized):
            self.book(actor=self.vet_actor)

    def test_admin_books_on_behalf_of_owner(self):
        appointment = self.book(actor=self.admin_actor, pet=self.other_pet)

        self.assertEqual(appointment.customer_id, self.other_customer.id)
        self.assertEqual(appointment.created_by_id, self.admin.id)

    def test_rejects_past_closed_and_off_grid(self):
        with self.assertRaises(PastDate):
            self.book(day=YESTERDAY)
        with self.assertRaises(SundayNotAllowed):
            self.book(day=SUNDAY)
        with self.assertRaises(ValidationError):
            self.book(time='09:15')
        with self.assertRaises(PastDate):
            self.book(day=TODAY, time='07:30')

    def test_saturday_is_open(self):
        self.assertEqual(self.book(day=SATURDAY).status, 'pending')

    def test_emergency_is_urgent(self):
        appointment = self.book(appointment_type='emergency', is_emergency=True)

        self.assertTrue(appointment.is_emergency)
        self.assertEqual(appointment.priority, 'urgent')

    def test_create_is_audited(self):
        appointment = self.book()

        entry = AuditLog.query.filter_by(entity_id=str(appointment.id), action='create').first()
        self.assertIsNotNone(entry)
        self.assertEqual(entry.user_id, self.customer.id)


class TestQueries(ClinicTestCase):

    def test_customers_only_see_their_own(self):
        self.book(time='09:00')
        self.book(time='09:30', actor=self.other_actor, pet=self.other_pet)

        mine = booking.list_appointments(self.customer_actor)
        everything = booking.list_appointments(self.vet_actor)

        self.assertEqual(mine['pagination']['total'], 1)
        self.assertEqual(everything['pagination']['total'], 2)

    def test_filters_and_pagination(self):
        for time in ('07:00', '07:30', '08:00'):
            self.book(time=time)
        self.book(day=SATURDAY, time='10:00', appointment_type='vaccination')

        page = booking.list_appointments(self.admin_actor, date=TOMORROW.isoformat(), limit=2)
        self.assertEqual(page['pagination']['total'], 3)
        self.assertEqual([a.time for a in page['items']], ['07:00', '07:30'])
        self.assertTrue(page['pagination']['has_next'])

        vaccinations = booking.list_appointments(self.admin_actor, appointment_type='vaccination')
        self.assertEqual(vaccinations['pagination']['total'], 1)

        self.assertEqual(booking.list_appointments(self.admin_actor, status='all')['pagination']['total'], 4)

    def test_invalid_status_filter(self):
        with self.assertRaises(ValidationError):
            booking.list_appointments(self.admin_actor, status='archived')

    def test_get_appointment(self):
        appointment = self.book()

        self.assertEqual(booking.get_appointment(self.customer_actor, appointment.id).id, appointment.id)
        with self.assertRaises(Unauthorized):
            booking.get_appointment(self.other_actor, appointment.id)
        with self.assertRaises(AppointmentNotFound):
            booking.get_appointment(self.admin_actor, 4242)

    def test_available_slots_exclude_booked(self):
        self.book(time='09:00')
        cancelled = self.book(time='10:00')
        booking.cancel_appointment(self.customer_actor, cancelled.id, now=NOW)

        times = [slot.time for slot in booking.list_available_slots(TOMORROW.isoformat(), now=NOW)]

        self.assertEqual(len(times), 19)
        self.assertNotIn('09:00', times)
        self.assertIn('10:00', times)

    def test_available_slots_today_skip_past_times(self):
        times = [slot.time for slot in booking.list_available_slots(TODAY.isoformat(), now=NOW)]

        self.assertNotIn('07:30', times)
        self.assertNotIn('08:00', times)
        self.assertEqual(times[0], '08:30')

    def test_available_slots_sunday_and_yesterday(self):
        with self.assertRaises(SundayNotAllowed):
            booking.list_available_slots(SUNDAY.isoformat(), now=NOW)
        with self.assertRaises(PastDate):
            booking.list_available_slots(YESTERDAY.isoformat(), now=NOW)

    def test_stats(self):
        self.book(time='09:00')
        self.book(time='09:30', appointment_type='emergency', is_emergency=True)
        cancelled = self.book(time='10:00')
        booking.cancel_appointment(self.customer_actor, cancelled.id, now=NOW)

        stats = booking.appointment_stats(self.admin_actor, now=NOW)

        self.assertEqual(stats['total'], 3)
        self.assertEqual(stats['by_status'], {'pending': 2, 'cancelled': 1})
        self.assertEqual(stats['by_type']['consultation'], 2)
        self.assertEqual(stats['emergencies'], 1)
        self.assertEqual(stats['upcoming'], 2)

        with self.assertRaises(Unauthorized):
            booking.appointment_stats(self.vet_actor, now=NOW)


class TestTransitions(ClinicTestCase):

    def test_confirm_twice(self):
        appointment = self.book()

        confirmed = booking.confirm_appointment(self.vet_actor, appointment.id)
        self.assertEqual(confirmed.status, 'confirmed')
        self.assertEqual(confirmed.veterinarian_id, self.vet.id)
        self.assertEqual(confirmed.modified_by_id, self.vet.id)

        with self.assertRaises(InvalidTransition):
            booking.confirm_appointment(self.vet_actor, appointment.id)
        self.assertEqual(db.session.get(Appointment, appointment.id).status, 'confirmed')

    def test_customer_cannot_confirm(self):
        appointment = self.book()

        with self.assertRaises(Unauthorized):
            booking.confirm_appointment(self.customer_actor, appointment.id)

    def test_start_and_complete_with_outcome(self):
        appointment = self.book()
        booking.confirm_appointment(self.vet_actor, appointment.id)
        booking.start_appointment(self.vet_actor, appointment.id)

        completed = booking.complete_appointment(self.vet_actor, appointment.id, {
            'diagnosis': 'Mild otitis',
            'treatment': 'Ear cleaning',
            'medications': [{'name': 'Otomax', 'dose': '5 drops', 'frequency': 'every 12h', 'duration': '7 days'}],
            'attachments': [{'name': 'otoscopy.jpg', 'url': 'https://files.example.com/otoscopy.jpg', 'kind': 'image'}],
            'follow_up_required': True,
            'follow_up_date': '2026-10-27',
        })

        self.assertEqual(completed.status, 'completed')
        self.assertEqual(completed.diagnosis, 'Mild otitis')
        self.assertEqual(completed.medications[0]['instructions'], '')
        self.assertEqual(len(completed.attachments), 1)
        self.assertTrue(completed.follow_up_required)
        self.assertEqual(completed.follow_up_date.isoformat(), '2026-10-27')

    def test_cannot_start_pending(self):
        appointment = self.book()

        with self.assertRaises(InvalidTransition):
            booking.start_appointment(self.vet_actor, appointment.id)
        self.assertEqual(db.session.get(Appointment, appointment.id).status, 'pending')

    def test_invalid_medications_leave_appointment_untouched(self):
        appointment = self.book()
        booking.confirm_appointment(self.vet_actor, appointment.id)

        with self.assertRaises(ValidationError):
            booking.complete_appointment(self.vet_actor, appointment.id, {'medications': [{'name': 'X'}]})
        self.assertEqual(db.session.get(Appointment, appointment.id).status, 'confirmed')

    def test_non_text_outcome_fields_are_rejected(self):
        appointment = self.book()
        booking.confirm_appointment(self.vet_actor, appointment.id)
        medication = {'name': 'Otomax', 'dose': 5, 'frequency': 'every 12h', 'duration': '7 days'}

        with self.assertRaises(ValidationError) as ctx:
            booking.complete_appointment(self.vet_actor, appointment.id, {'medications': [medication]})
        self.assertIn('medications[0].dose', ctx.exception.message)

        with self.assertRaises(ValidationError) as ctx:
            booking.complete_appointment(self.vet_actor, appointment.id, {
                'attachments': [{'name': 'xray.png', 'url': 123}],
            })
        self.assertIn('attachments[0].url', ctx.exception.message)

        self.assertEqual(db.session.get(Appointment, appointment.id).status, 'confirmed')

    def test_no_show_only_after_start_time(self):
        appointment = self.book(time='09:00')
        booking.confirm_appointment(self.vet_actor, appointment.id)
        start = datetime(2026, 10, 20, 9, 0)

        with self.assertRaises(InvalidTransition):
            booking.mark_no_show(self.vet_actor, appointment.id, now=start - timedelta(minutes=10))

        no_show = booking.mark_no_show(self.vet_actor, appointment.id, now=start + timedelta(minutes=20))
        self.assertEqual(no_show.status, 'no_show')

    def test_no_show_requires_confirmed(self):
        appointment = self.book(time='09:00')

        with self.assertRaises(InvalidTransition):
            booking.mark_no_show(self.vet_actor, appointment.id, now=datetime(2026, 10, 20, 10, 0))


class TestCancel(ClinicTestCase):

    def _confirmed_at(self, start):
        appointment = self.book(day=start.date(), time=start.strftime('%H:%M'))
        booking.confirm_appointment(self.vet_actor, appointment.id)
        return appointment

    def test_cancel_three_hours_before(self):
        start = datetime(2026, 10, 20, 11, 0)
        appointment = self._confirmed_at(start)

        cancelled = booking.cancel_appointment(
            self.customer_actor, appointment.id, 'Pet is feeling better', now=start - timedelta(hours=3))

        self.assertEqual(cancelled.status, 'cancelled')
        self.assertEqual(cancelled.cancelled_by, 'customer')
        self.assertEqual(cancelled.cancellation_reason, 'Pet is feeling better')
        self.assertEqual(cancelled.cancelled_at, start - timedelta(hours=3))

    def test_cancel_one_hour_before_fails(self):
        start = datetime(2026, 10, 20, 11, 0)
        appointment = self._confirmed_at(start)

        with self.assertRaises(CannotCancel):
            booking.cancel_appointment(self.customer_actor, appointment.id, now=start - timedelta(hours=1))
        self.assertEqual(db.session.get(Appointment, appointment.id).status, 'confirmed')

    def test_cancel_completed_fails(self):
        appointment = self.book()
        booking.confirm_appointment(self.vet_actor, appointment.id)
        booking.complete_appointment(self.vet_actor, appointment.id)

        with self.assertRaises(CannotCancel):
            booking.cancel_appointment(self.admin_actor, appointment.id, now=NOW)

    def test_staff_cancellation_is_labelled(self):
        appointment = self.book()

        cancelled = booking.cancel_appointment(self.vet_actor, appointment.id, now=NOW)

        self.assertEqual(cancelled.cancelled_by, 'veterinarian')
        self.assertEqual(cancelled.cancellation_reason, 'No reason given')

    def test_other_customer_cannot_cancel(self):
        appointment = self.book()

        with self.assertRaises(Unauthorized):
            booking.cancel_appointment(self.other_actor, appointment.id, now=NOW)


class TestUpdateAndReschedule(ClinicTestCase):

    def test_owner_updates_pending(self):
        appointment = self.book()

        updated = booking.update_appointment(self.customer_actor, appointment.id, {
            'reason': 'Vomiting since yesterday',
            'symptoms': 'Vomiting',
            'fasting_required': 'true',
        }, now=NOW)

        self.assertEqual(updated.reason, 'Vomiting since yesterday')
        self.assertTrue(updated.fasting_required)

    def test_owner_cannot_update_confirmed(self):
        appointment = self.book()
        booking.confirm_appointment(self.vet_actor, appointment.id)

        with self.assertRaises(InvalidStatus):
            booking.update_appointment(self.customer_actor, appointment.id, {'notes': 'Bring leash'}, now=NOW)

        updated = booking.update_appointment(self.vet_actor, appointment.id, {'notes': 'Bring leash'}, now=NOW)
        self.assertEqual(updated.notes, 'Bring leash')

    def test_update_moving_to_own_slot_is_not_a_conflict(self):
        appointment = self.book(time='09:00')

        updated = booking.update_appointment(
            self.customer_actor, appointment.id, {'date': TOMORROW.isoformat(), 'time': '09:00'}, now=NOW)

        self.assertEqual(updated.time, '09:00')

    def test_update_into_taken_slot(self):
        self.book(time='09:00', actor=self.other_actor, pet=self.other_pet)
        appointment = self.book(time='10:00')

        with self.assertRaises(SlotTaken):
            booking.update_appointment(self.customer_actor, appointment.id, {'time': '09:00'}, now=NOW)
        self.assertEqual(db.session.get(Appointment, appointment.id).time, '10:00')

    def test_reschedule_resets_to_pending(self):
        appointment = self.book(time='09:00')
        booking.confirm_appointment(self.vet_actor, appointment.id)
        Appointment.query.filter_by(id=appointment.id).update({'reminder_sent_at': NOW})
        db.session.commit()

        moved = booking.reschedule_appointment(
            self.customer_actor, appointment.id, SATURDAY.isoformat(), '15:00', 'Work trip', now=NOW)

        self.assertEqual(moved.status, 'pending')
        self.assertEqual(moved.date, SATURDAY)
        self.assertEqual(moved.time, '15:00')
        self.assertIsNone(moved.reminder_sent_at)
        self.assertIn('Rescheduled: Work trip', moved.notes)
        self.assertIn('09:00', [s.time for s in booking.list_available_slots(TOMORROW.isoformat(), now=NOW)])

    def test_reschedule_into_taken_slot(self):
        self.book(time='15:00', day=SATURDAY, actor=self.other_actor, pet=self.other_pet)
        appointment = self.book(time='09:00')

        with self.assertRaises(SlotTaken):
            booking.reschedule_appointment(self.customer_actor, appointment.id, SATURDAY.isoformat(), '15:00', now=NOW)

        stored = db.session.get(Appointment, appointment.id)
        self.assertEqual((stored.date, stored.time), (TOMORROW, '09:00'))

    def test_reschedule_after_start_fails(self):
        appointment = self.book(time='09:00')

        with self.assertRaises(CannotReschedule):
            booking.reschedule_appointment(
                self.customer_actor, appointment.id, SATURDAY.isoformat(), '15:00',
                now=datetime(2026, 10, 20, 9, 5))


class TestReminders(ClinicTestCase):

    def _confirmed(self, time='09:00'):
        appointment = self.book(time=time)
        booking.confirm_appointment(self.vet_actor, appointment.id)
        return appointment

    def test_send_reminder_records_timestamp(self):
        appointment = self._confirmed()

        with patch(REMINDER_PATH, return_value=True) as send:
            recorded = booking.send_reminder(self.admin_actor, appointment.id, now=NOW)

        self.assertTrue(recorded)
        email, name, summary = send.call_args[0]
        self.assertEqual(email, 'carlos@example.com')
        self.assertEqual(summary['pet_name'], 'Max')
        self.assertEqual(db.session.get(Appointment, appointment.id).reminder_sent_at, NOW)

    def test_reminder_requires_confirmed(self):
        appointment = self.book()

        with patch(REMINDER_PATH, return_value=True) as send:
            with self.assertRaises(InvalidStatus):
                booking.send_reminder(self.admin_actor, appointment.id, now=NOW)
        send.assert_not_called()

    def test_delivery_failure_is_reported_and_not_recorded(self):
        appointment = self._confirmed()

        with patch(REMINDER_PATH, return_value=False):
            with self.assertRaises(NotificationFailed):
                booking.send_reminder(self.admin_actor, appointment.id, now=NOW)

        stored = db.session.get(Appointment, appointment.id)
        self.assertEqual(stored.status, 'confirmed')
        self.assertIsNone(stored.reminder_sent_at)

    def test_only_admin_sends_reminders(self):
        appointment = self._confirmed()

        with self.assertRaises(Unauthorized):
            booking.send_reminder(self.vet_actor, appointment.id, now=NOW)

    def test_system_actor_may_send(self):
        appointment = self._confirmed()

        with patch(REMINDER_PATH, return_value=True):
            self.assertTrue(booking.send_reminder(SYSTEM_ACTOR, appointment.id, now=NOW))

    def test_due_for_reminder(self):
        soon = self._confirmed(time='09:00')
        self.book(time='10:00')  # pending, not due
        later = self.book(day=SATURDAY, time='09:00')
        booking.confirm_appointment(self.vet_actor, later.id)

        self.assertEqual(booking.appointments_due_for_reminder(now=NOW, lead_hours=48), [soon.id])

    def test_confirm_triggers_reminder_task(self):
        self.app.config['REMINDER_ON_CONFIRM'] = True
        appointment = self.book()

        with patch('tasks.reminder_tasks.send_appointment_reminder_task.delay') as delay:
            booking.confirm_appointment(self.vet_actor, appointment.id)

        delay.assert_called_once_with(appointment.id)

    def test_broker_outage_does_not_undo_confirmation(self):
        from kombu.exceptions import OperationalError

        self.app.config['REMINDER_ON_CONFIRM'] = True
        appointment = self.book()

        with patch('tasks.reminder_tasks.send_appointment_reminder_task.delay',
                   side_effect=OperationalError('broker down')):
            confirmed = booking.confirm_appointment(self.vet_actor, appointment.id)

        self.assertEqual(confirmed.status, 'confirmed')
        self.assertEqual(db.session.get(Appointment, appointment.id).status, 'confirmed')


if __name__ == '__main__':
    unittest.main()
