"""
Booking Service

The only entry point that mutates appointments. Every operation:
1. Loads the appointment (AppointmentNotFound)
2. Runs the authorization policy (Unauthorized)
3. Applies lifecycle / temporal rules (InvalidTransition and subclasses)
4. Routes date/time writes through the conflict guard (SlotTaken)
5. Commits, or rolls back everything on any failure
"""
import logging
from contextlib import contextmanager
from datetime import timedelta

from flask import current_app

from vetclinic.errors import (
    AppointmentNotFound,
    CannotReschedule,
    InvalidStatus,
    NotificationFailed,
    PastDate,
    SundayNotAllowed,
    ValidationError,
)
from vetclinic.extensions import db
from vetclinic.models import Appointment
from vetclinic.scheduling import lifecycle, policy
from vetclinic.scheduling.clock import clinic_now
from vetclinic.scheduling.conflict import claim_slot, occupied_times
from vetclinic.scheduling.slots import ClinicCalendar, available_slots, is_nominal_slot
from vetclinic.services import email_service
from vetclinic.services.notification_service import notify_appointment_confirmed
from vetclinic.services.pet_registry import find_pet
from vetclinic.utils.audit import log_audit
from vetclinic.utils.validators import (
    APPOINTMENT_TYPES,
    normalize_time,
    parse_bool,
    parse_date,
    validate_attachments,
    validate_choice,
    validate_medications,
    validate_pagination,
    validate_reason,
    validate_text,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    'appointment_type', 'date', 'time', 'reason', 'symptoms', 'notes',
    'preparation_instructions', 'fasting_required',
)
ALL_FILTER_VALUES = ('', 'all')
UPCOMING_WINDOW_DAYS = 7


def _calendar():
    return ClinicCalendar.from_config(current_app.config)


def _cancellation_notice():
    return timedelta(hours=current_app.config.get('CANCELLATION_NOTICE_HOURS', 2))


@contextmanager
def _transaction():
    """Commit on success; roll back the whole unit of work on any error."""
    try:
        yield
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def _get_appointment(appointment_id):
    try:
        appointment_id = int(appointment_id)
    except (TypeError, ValueError):
        raise AppointmentNotFound()
    appointment = Appointment.query.filter(Appointment.id == appointment_id).first()
    if not appointment:
        raise AppointmentNotFound()
    return appointment


def _validate_bookable(calendar, day, time, now):
    """Reject past days, closed days, off-grid times and start times already gone."""
    if day < now.date():
        raise PastDate()
    if calendar.is_closed(day):
        raise SundayNotAllowed()
    if not is_nominal_slot(calendar, day, time):
        raise ValidationError(f'Time {time} is not a bookable slot (see available slots for {day.isoformat()})')
    if lifecycle.starts_at(day, time) <= now:
        raise PastDate('That appointment time has already passed')


def create_appointment(actor, pet_id, appointment_type, date, time, reason,
                       symptoms=None, notes=None, is_emergency=False,
                       fasting_required=False, preparation_instructions=None,
                       now=None):
    """
    Book a new appointment in status pending.

    Raises:
        ValidationError, PetNotFound, Unauthorized, SlotTaken
    """
    now = now or clinic_now()

    errors = []
    if not pet_id:
        errors.append('Pet ID is required')
    if appointment_type not in APPOINTMENT_TYPES:
        errors.append('Invalid appointment type')
    for check, value in ((parse_date, date), (normalize_time, time), (validate_reason, reason)):
        try:
            check(value)
        except ValidationError as e:
            errors.append(e.message)
    try:
        symptoms = validate_text(symptoms, 'Symptoms')
        notes = validate_text(notes, 'Notes')
        preparation_instructions = validate_text(preparation_instructions, 'Preparation instructions')
    except ValidationError as e:
        errors.append(e.message)
    if errors:
        raise ValidationError('Invalid appointment data', details=errors)

    day = parse_date(date)
    time = normalize_time(time)

    pet = find_pet(pet_id)
    policy.authorize(actor, policy.BOOK, owner_id=pet.owner_id,
                     message='Not authorized to book an appointment for this pet')

    _validate_bookable(_calendar(), day, time, now)

    is_emergency = parse_bool(is_emergency)
    appointment = Appointment(
        pet_id=pet.id,
        customer_id=pet.owner_id,
        appointment_type=appointment_type,
        date=day,
        time=time,
        reason=reason,
        symptoms=symptoms or '',
        notes=notes or '',
        is_emergency=is_emergency,
        fasting_required=parse_bool(fasting_required),
        preparation_instructions=preparation_instructions or '',
        priority='urgent' if is_emergency else 'normal',
        status=lifecycle.PENDING,
        created_by_id=actor.id,
        modified_by_id=actor.id,
    )

    with _transaction():
        claim_slot(appointment)

    logger.info("Appointment %s booked for pet %s on %s %s", appointment.id, pet.id, day, time)
    log_audit('appointment', 'create', user_id=actor.id, entity_id=appointment.id,
              details={'pet_id': pet.id, 'date': day.isoformat(), 'time': time})
    return appointment


def list_appointments(actor, date=None, status=None, appointment_type=None, pet_id=None,
                      page=1, limit=10):
    """Page of appointments; customers only ever see their own."""
    page, limit = validate_pagination(page, limit)

    query = Appointment.query
    if not actor.is_staff:
        query = query.filter(Appointment.customer_id == actor.id)

    if date:
        query = query.filter(Appointment.date == parse_date(date))
    if status not in (None, *ALL_FILTER_VALUES):
        query = query.filter(Appointment.status == validate_choice(status, lifecycle.STATUSES, 'status'))
    if appointment_type not in (None, *ALL_FILTER_VALUES):
        query = query.filter(Appointment.appointment_type == validate_choice(
            appointment_type, APPOINTMENT_TYPES, 'appointment type'))
    if pet_id:
        try:
            query = query.filter(Appointment.pet_id == int(pet_id))
        except (TypeError, ValueError):
            logger.debug("Ignoring malformed pet_id filter %r", pet_id)

    total = query.count()
    result = query.order_by(
        Appointment.date.asc(),
        Appointment.time.asc()
    ).paginate(page=page, per_page=limit, error_out=False)

    return {
        'items': result.items,
        'pagination': {
            'page': page,
            'limit': limit,
            'total': total,
            'pages': result.pages,
            'has_next': result.has_next,
            'has_prev': result.has_prev,
        },
    }


def get_appointment(actor, appointment_id):
    appointment = _get_appointment(appointment_id)
    policy.authorize(actor, policy.VIEW, owner_id=appointment.customer_id,
                     message='Not authorized to view this appointment')
    return appointment


def update_appointment(actor, appointment_id, patch, now=None):
    """
    Patch editable fields. Customers may only edit their own pending
    appointments; staff may edit any appointment that is not finished.

    Raises:
        AppointmentNotFound, Unauthorized, InvalidStatus, ValidationError, SlotTaken
    """
    now = now or clinic_now()
    appointment = _get_appointment(appointment_id)
    policy.authorize(actor, policy.EDIT, owner_id=appointment.customer_id,
                     message='Not authorized to modify this appointment')

    if lifecycle.is_terminal(appointment.status):
        raise InvalidStatus(f'Appointments in status "{appointment.status}" cannot be modified')
    if not actor.is_staff and appointment.status != lifecycle.PENDING:
        raise InvalidStatus('Only pending appointments can be modified')

    changes = {field: patch[field] for field in UPDATABLE_FIELDS if field in patch}

    new_date = parse_date(changes['date']) if changes.get('date') else appointment.date
    new_time = normalize_time(changes['time']) if changes.get('time') else appointment.time
    slot_changed = new_date != appointment.date or new_time != appointment.time
    if slot_changed:
        _validate_bookable(_calendar(), new_date, new_time, now)

    if changes.get('appointment_type'):
        validate_choice(changes['appointment_type'], APPOINTMENT_TYPES, 'appointment type')
    if changes.get('reason'):
        changes['reason'] = validate_reason(changes['reason'])
    for field, label in (('symptoms', 'Symptoms'), ('notes', 'Notes'),
                         ('preparation_instructions', 'Preparation instructions')):
        if field in changes:
            changes[field] = validate_text(changes[field], label) or ''

    with _transaction():
        if changes.get('appointment_type'):
            appointment.appointment_type = changes['appointment_type']
        if changes.get('reason'):
            appointment.reason = changes['reason']
        for field in ('symptoms', 'notes', 'preparation_instructions'):
            if field in changes:
                setattr(appointment, field, changes[field])
        if 'fasting_required' in changes:
            appointment.fasting_required = parse_bool(changes['fasting_required'])
        appointment.modified_by_id = actor.id

        if slot_changed:
            claim_slot(appointment, new_date, new_time)

    log_audit('appointment', 'update', user_id=actor.id, entity_id=appointment.id,
              details={'fields': sorted(changes)})
    return appointment


def cancel_appointment(actor, appointment_id, reason=None, now=None):
    """
    Raises:
        AppointmentNotFound, Unauthorized, CannotCancel
    """
    now = now or clinic_now()
    appointment = _get_appointment(appointment_id)
    policy.authorize(actor, policy.CANCEL, owner_id=appointment.customer_id,
                     message='Not authorized to cancel this appointment')

    reason = validate_text(reason, 'Cancellation reason') or 'No reason given'
    with _transaction():
        appointment.cancel(reason, actor.cancelled_by_label, actor.id, now,
                           notice=_cancellation_notice())

    logger.info("Appointment %s cancelled by %s", appointment.id, appointment.cancelled_by)
    log_audit('appointment', 'cancel', user_id=actor.id, entity_id=appointment.id,
              details={'reason': reason, 'cancelled_by': appointment.cancelled_by})
    return appointment


def reschedule_appointment(actor, appointment_id, new_date, new_time, reason=None, now=None):
    """
    Move the appointment to another slot; it goes back to pending and any
    reminder already sent is forgotten.

    Raises:
        AppointmentNotFound, Unauthorized, CannotReschedule, ValidationError, SlotTaken
    """
    now = now or clinic_now()
    appointment = _get_appointment(appointment_id)
    policy.authorize(actor, policy.RESCHEDULE, owner_id=appointment.customer_id,
                     message='Not authorized to reschedule this appointment')

    if not appointment.can_be_rescheduled(now):
        raise CannotReschedule()

    day = parse_date(new_date)
    time = normalize_time(new_time)
    _validate_bookable(_calendar(), day, time, now)
    reason = validate_text(reason, 'Reschedule reason') or ''

    previous = (appointment.date.isoformat(), appointment.time)
    with _transaction():
        appointment.reschedule(reason, actor.id, now)
        claim_slot(appointment, day, time)

    logger.info("Appointment %s rescheduled from %s %s to %s %s",
                appointment.id, previous[0], previous[1], day, time)
    log_audit('appointment', 'reschedule', user_id=actor.id, entity_id=appointment.id,
              details={'from': previous, 'to': (day.isoformat(), time), 'reason': reason})
    return appointment


def confirm_appointment(actor, appointment_id, veterinarian_notes=None):
    appointment = _get_appointment(appointment_id)
    policy.authorize(actor, policy.MANAGE, message='Only veterinarians can confirm appointments')

    veterinarian_notes = validate_text(veterinarian_notes, 'Veterinarian notes')
    with _transaction():
        appointment.confirm(actor.id, veterinarian_notes)

    log_audit('appointment', 'confirm', user_id=actor.id, entity_id=appointment.id)
    notify_appointment_confirmed(appointment)
    return appointment


def start_appointment(actor, appointment_id):
    appointment = _get_appointment(appointment_id)
    policy.authorize(actor, policy.MANAGE, message='Only veterinarians can start appointments')

    with _transaction():
        appointment.start(actor.id)

    log_audit('appointment', 'start', user_id=actor.id, entity_id=appointment.id)
    return appointment


def complete_appointment(actor, appointment_id, outcome=None):
    """
    Close the visit and record its clinical outcome.

    ``outcome`` may hold diagnosis, treatment, veterinarian_notes,
    medications, attachments, follow_up_required and follow_up_date.
    """
    appointment = _get_appointment(appointment_id)
    policy.authorize(actor, policy.MANAGE, message='Only veterinarians can complete appointments')

    outcome = outcome or {}
    cleaned = {
        'diagnosis': validate_text(outcome.get('diagnosis'), 'Diagnosis'),
        'treatment': validate_text(outcome.get('treatment'), 'Treatment'),
        'veterinarian_notes': validate_text(outcome.get('veterinarian_notes'), 'Veterinarian notes'),
        'medications': validate_medications(outcome.get('medications')),
        'attachments': validate_attachments(outcome.get('attachments')),
        'follow_up_required': parse_bool(outcome.get('follow_up_required', False)),
    }
    if cleaned['follow_up_required']:
        cleaned['follow_up_date'] = parse_date(outcome.get('follow_up_date'), 'follow_up_date')

    with _transaction():
        appointment.complete(actor.id, cleaned)

    log_audit('appointment', 'complete', user_id=actor.id, entity_id=appointment.id,
              details={'follow_up_required': cleaned['follow_up_required']})
    return appointment


def mark_no_show(actor, appointment_id, now=None):
    now = now or clinic_now()
    appointment = _get_appointment(appointment_id)
    policy.authorize(actor, policy.MANAGE, message='Only veterinarians can mark no-shows')

    with _transaction():
        appointment.mark_no_show(actor.id, now)

    log_audit('appointment', 'no_show', user_id=actor.id, entity_id=appointment.id)
    return appointment


def list_available_slots(day, now=None):
    """
    Free slots of ``day``: the catalog minus slots held by active appointments
    (and, for today, minus times already gone).

    Raises:
        PastDate, SundayNotAllowed, ValidationError
    """
    now = now or clinic_now()
    day = parse_date(day)
    calendar = _calendar()

    if calendar.is_closed(day) and day >= now.date():
        raise SundayNotAllowed()
    slots = available_slots(calendar, day, today=now.date())

    taken = occupied_times(day)
    return [
        slot for slot in slots
        if slot.time not in taken and lifecycle.starts_at(day, slot.time) > now
    ]


def _reminder_summary(appointment):
    return {
        'pet_name': appointment.pet.name if appointment.pet else 'your pet',
        'appointment_type': appointment.appointment_type,
        'date': appointment.date,
        'time': appointment.time,
        'reason': appointment.reason,
        'fasting_required': appointment.fasting_required,
        'preparation_instructions': appointment.preparation_instructions,
    }


def send_reminder(actor, appointment_id, now=None):
    """
    Email the owner a reminder of a confirmed appointment.

    Delivery happens with no transaction open. On success the reminder time is
    recorded only if the appointment is still confirmed.

    Raises:
        Unauthorized, AppointmentNotFound, InvalidStatus, NotificationFailed
    """
    now = now or clinic_now()
    policy.authorize(actor, policy.REMIND, message='Only administrators can send reminders')
    appointment = _get_appointment(appointment_id)

    if appointment.status != lifecycle.CONFIRMED:
        raise InvalidStatus('Reminders can only be sent for confirmed appointments')

    appointment_id = appointment.id
    customer = appointment.customer
    if customer is None or not customer.email:
        raise NotificationFailed('Appointment owner has no email address')
    email, name = customer.email, customer.name
    summary = _reminder_summary(appointment)

    # Release the read transaction before talking to SMTP
    db.session.commit()

    if not email_service.send_appointment_reminder(email, name, summary):
        logger.warning("Reminder for appointment %s could not be delivered", appointment_id)
        raise NotificationFailed()

    with _transaction():
        updated = Appointment.query.filter(
            Appointment.id == appointment_id,
            Appointment.status == lifecycle.CONFIRMED,
        ).update({'reminder_sent_at': now, 'modified_by_id': actor.id}, synchronize_session=False)

    if not updated:
        logger.warning("Appointment %s changed status while its reminder was being sent", appointment_id)
    else:
        log_audit('appointment', 'remind', user_id=actor.id, entity_id=appointment_id)
    return bool(updated)


def appointments_due_for_reminder(now=None, lead_hours=None):
    """Ids of confirmed, not yet reminded appointments starting within the lead window."""
    now = now or clinic_now()
    if lead_hours is None:
        lead_hours = current_app.config.get('REMINDER_LEAD_HOURS', 24)
    horizon = now + timedelta(hours=lead_hours)

    candidates = Appointment.query.filter(
        Appointment.status == lifecycle.CONFIRMED,
        Appointment.reminder_sent_at.is_(None),
        Appointment.date >= now.date(),
        Appointment.date <= horizon.date(),
    ).order_by(Appointment.date.asc(), Appointment.time.asc()).all()

    return [a.id for a in candidates if now < a.starts_at <= horizon]


def appointment_stats(actor, start_date=None, end_date=None, now=None):
    """Totals by status and type, emergencies, and upcoming bookings (admin only)."""
    now = now or clinic_now()
    policy.authorize(actor, policy.VIEW_STATS, message='Administrator permissions required')

    filters = []
    if start_date:
        filters.append(Appointment.date >= parse_date(start_date, 'start_date'))
    if end_date:
        filters.append(Appointment.date <= parse_date(end_date, 'end_date'))

    by_status = dict(
        db.session.query(Appointment.status, db.func.count(Appointment.id))
        .filter(*filters).group_by(Appointment.status).all()
    )
    by_type = dict(
        db.session.query(Appointment.appointment_type, db.func.count(Appointment.id))
        .filter(*filters).group_by(Appointment.appointment_type).all()
    )
    emergencies = Appointment.query.filter(*filters).filter(Appointment.is_emergency.is_(True)).count()

    today = now.date()
    upcoming = Appointment.query.filter(
        Appointment.date >= today,
        Appointment.date <= today + timedelta(days=UPCOMING_WINDOW_DAYS),
        Appointment.status.in_([lifecycle.PENDING, lifecycle.CONFIRMED]),
    ).count()

    return {
        'total': sum(by_status.values()),
        'by_status': by_status,
        'by_type': by_type,
        'emergencies': emergencies,
        'upcoming': upcoming,
        'period': {
            'start': start_date or None,
            'end': end_date or None,
        },
    }
