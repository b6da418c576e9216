"""
Conflict Guard

Single-booking-per-slot invariant: at most one non-cancelled appointment per
(date, time).

The query below is only a fast path for a friendly error. The authority is
the partial unique index ``uq_appointments_active_slot``; the write is flushed
inside a SAVEPOINT so a concurrent booking that slipped past the pre-check
surfaces as SlotTaken instead of a raw IntegrityError.
"""
import logging
from datetime import date
from typing import Optional, Set

from sqlalchemy.exc import IntegrityError

from vetclinic.errors import SlotTaken
from vetclinic.extensions import db
from vetclinic.models import Appointment
from vetclinic.scheduling import lifecycle

logger = logging.getLogger(__name__)

SLOT_INDEX_NAME = 'uq_appointments_active_slot'


def find_active_at(day: date, time: str, exclude_id: Optional[int] = None) -> Optional[Appointment]:
    """Active appointment holding (day, time), ignoring ``exclude_id``."""
    query = Appointment.query.filter(
        Appointment.date == day,
        Appointment.time == time,
        Appointment.status != lifecycle.CANCELLED,
    )
    if exclude_id is not None:
        query = query.filter(Appointment.id != exclude_id)
    with db.session.no_autoflush:
        return query.first()


def occupied_times(day: date) -> Set[str]:
    rows = db.session.query(Appointment.time).filter(
        Appointment.date == day,
        Appointment.status != lifecycle.CANCELLED,
    ).all()
    return {row.time for row in rows}


def _is_slot_violation(error: IntegrityError) -> bool:
    message = str(error.orig)
    return SLOT_INDEX_NAME in message or 'appointments.date, appointments.time' in message


def claim_slot(appointment: Appointment, day: Optional[date] = None,
               time: Optional[str] = None) -> Appointment:
    """
    Persist ``appointment`` at (day, time) if that slot is free.

    ``day`` and ``time`` default to the appointment's own values, which is
    what a new booking passes. To move an existing appointment pass the
    target slot here instead of assigning it on the row first.

    Does not commit; the caller owns the transaction.

    Raises:
        SlotTaken: if another active appointment holds the slot
    """
    day = appointment.date if day is None else day
    time = appointment.time if time is None else time

    existing = find_active_at(day, time, exclude_id=appointment.id)
    if existing is not None:
        raise SlotTaken()

    # begin_nested() flushes whatever is pending before the SAVEPOINT opens,
    # so the slot columns must only change inside it
    db.session.flush()
    try:
        with db.session.begin_nested():
            appointment.date = day
            appointment.time = time
            db.session.add(appointment)
            db.session.flush()
    except IntegrityError as e:
        if not _is_slot_violation(e):
            raise
        logger.info("Slot %s %s taken by a concurrent booking", day, time)
        raise SlotTaken() from e

    return appointment
