"""
Slot Catalog

Generates the nominal bookable time slots of a clinic day from the static
calendar configuration:
- Two operating windows (morning, afternoon), end time inclusive
- Fixed interval between slots
- Closed weekdays (no slots at all)

Pure: no database access, no clock. The caller supplies "today".
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

from vetclinic.errors import PastDate

MORNING = 'morning'
AFTERNOON = 'afternoon'

WEEKDAY_NAMES = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']


@dataclass(frozen=True)
class Slot:
    time: str
    period: str

    def to_dict(self):
        return {'time': self.time, 'period': self.period}


@dataclass(frozen=True)
class OperatingWindow:
    period: str
    start: str
    end: str
    interval_minutes: int = 30


@dataclass(frozen=True)
class ClinicCalendar:
    windows: Tuple[OperatingWindow, ...] = field(default_factory=lambda: (
        OperatingWindow(MORNING, '07:00', '12:00'),
        OperatingWindow(AFTERNOON, '14:00', '18:00'),
    ))
    closed_weekdays: Tuple[int, ...] = (6,)

    @classmethod
    def from_config(cls, config) -> 'ClinicCalendar':
        """Build the calendar from a Flask config mapping."""
        interval = int(config.get('CLINIC_SLOT_INTERVAL_MINUTES', 30))
        return cls(
            windows=(
                OperatingWindow(MORNING, config.get('CLINIC_MORNING_START', '07:00'),
                                config.get('CLINIC_MORNING_END', '12:00'), interval),
                OperatingWindow(AFTERNOON, config.get('CLINIC_AFTERNOON_START', '14:00'),
                                config.get('CLINIC_AFTERNOON_END', '18:00'), interval),
            ),
            closed_weekdays=tuple(config.get('CLINIC_CLOSED_WEEKDAYS', (6,))),
        )

    def is_closed(self, day: date) -> bool:
        return day.weekday() in self.closed_weekdays

    def describe(self) -> dict:
        """Human readable schedule, used by the health endpoint."""
        return {
            f'{window.period}_hours': f'{window.start} - {window.end}'
            for window in self.windows
        } | {
            'interval_minutes': self.windows[0].interval_minutes if self.windows else None,
            'closed_days': [WEEKDAY_NAMES[d] for d in self.closed_weekdays],
        }


def _window_times(window: OperatingWindow) -> List[str]:
    anchor = date(2000, 1, 1)
    current = datetime.combine(anchor, datetime.strptime(window.start, '%H:%M').time())
    end = datetime.combine(anchor, datetime.strptime(window.end, '%H:%M').time())
    step = timedelta(minutes=window.interval_minutes)

    times = []
    while current <= end:
        times.append(current.strftime('%H:%M'))
        current += step
    return times


def generate_day_slots(calendar: ClinicCalendar) -> List[Slot]:
    """All nominal slots of an operating day, in chronological order."""
    slots = [
        Slot(time, window.period)
        for window in calendar.windows
        for time in _window_times(window)
    ]
    return sorted(slots, key=lambda slot: slot.time)


def available_slots(calendar: ClinicCalendar, day: date, today: Optional[date] = None) -> List[Slot]:
    """
    Nominal slots for ``day``.

    Returns an empty list when the clinic is closed that weekday.

    Raises:
        PastDate: if ``day`` is strictly before ``today``
    """
    if today is not None and day < today:
        raise PastDate()
    if calendar.is_closed(day):
        return []
    return generate_day_slots(calendar)


def is_nominal_slot(calendar: ClinicCalendar, day: date, time: str) -> bool:
    if calendar.is_closed(day):
        return False
    return any(slot.time == time for slot in generate_day_slots(calendar))
