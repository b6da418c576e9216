"""
Appointment Lifecycle

Status graph and the time-derived predicates the transitions depend on.
Everything here is a pure function of (status, date, time, now); nothing is
stored on the row.

    pending -> confirmed -> in_progress -> completed
    pending | confirmed -> cancelled
    pending | confirmed -> pending        (reschedule)
    confirmed -> completed
    confirmed -> no_show                  (after the start time)
"""
from datetime import date, datetime, timedelta

from vetclinic.errors import InvalidTransition

PENDING = 'pending'
CONFIRMED = 'confirmed'
IN_PROGRESS = 'in_progress'
COMPLETED = 'completed'
CANCELLED = 'cancelled'
NO_SHOW = 'no_show'

STATUSES = (PENDING, CONFIRMED, IN_PROGRESS, COMPLETED, CANCELLED, NO_SHOW)
TERMINAL_STATUSES = (COMPLETED, CANCELLED, NO_SHOW)

CONFIRM = 'confirm'
START = 'start'
COMPLETE = 'complete'
CANCEL = 'cancel'
RESCHEDULE = 'reschedule'
MARK_NO_SHOW = 'mark_no_show'

# action -> (allowed source statuses, target status)
TRANSITIONS = {
    CONFIRM: ((PENDING,), CONFIRMED),
    START: ((CONFIRMED,), IN_PROGRESS),
    COMPLETE: ((CONFIRMED, IN_PROGRESS), COMPLETED),
    CANCEL: ((PENDING, CONFIRMED), CANCELLED),
    RESCHEDULE: ((PENDING, CONFIRMED), PENDING),
    MARK_NO_SHOW: ((CONFIRMED,), NO_SHOW),
}

DEFAULT_CANCELLATION_NOTICE = timedelta(hours=2)


def is_terminal(status):
    return status in TERMINAL_STATUSES


def is_active(status):
    return status != CANCELLED


def allowed_actions(status):
    return [action for action, (sources, _) in TRANSITIONS.items() if status in sources]


def next_status(status, action):
    """
    Target status for ``action`` applied to ``status``.

    Raises:
        InvalidTransition: if the graph has no such edge
    """
    if action not in TRANSITIONS:
        raise InvalidTransition(f'Unknown transition "{action}"')
    sources, target = TRANSITIONS[action]
    if status not in sources:
        raise InvalidTransition(
            f'Cannot {action.replace("_", " ")} an appointment in status "{status}"'
        )
    return target


def starts_at(day: date, time: str) -> datetime:
    hours, minutes = (int(part) for part in time.split(':'))
    return datetime.combine(day, datetime.min.time()).replace(hour=hours, minute=minutes)


def time_until(day, time, now):
    return starts_at(day, time) - now


def has_passed(day, time, now):
    return starts_at(day, time) < now


def is_today(day, now):
    return day == now.date()


def can_be_cancelled(status, day, time, now, notice=DEFAULT_CANCELLATION_NOTICE):
    return status in TRANSITIONS[CANCEL][0] and time_until(day, time, now) >= notice


def can_be_rescheduled(status, day, time, now):
    return status in TRANSITIONS[RESCHEDULE][0] and not has_passed(day, time, now)


def can_be_marked_no_show(status, day, time, now):
    return status in TRANSITIONS[MARK_NO_SHOW][0] and has_passed(day, time, now)


def describe_time_until(day, time, now):
    """Short human description of the remaining time ('3 days', '2 hours')."""
    remaining = time_until(day, time, now)
    if remaining < timedelta(0):
        return 'past appointment'
    if remaining.days > 0:
        return f'{remaining.days} days'
    hours = remaining.seconds // 3600
    if hours > 0:
        return f'{hours} hours'
    return f'{remaining.seconds // 60} minutes'
