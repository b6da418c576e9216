"""
Clinic wall clock.

Appointment dates and times are stored naive, in the clinic's local time.
Every comparison against "now" goes through here so both sides share the
same zone.
"""
from datetime import datetime
from zoneinfo import ZoneInfo

from flask import current_app

DEFAULT_TIMEZONE = 'America/Bogota'


def clinic_now(tz_name=None):
    """Current naive wall-clock time in the clinic time zone."""
    if tz_name is None:
        tz_name = current_app.config.get('CLINIC_TIMEZONE', DEFAULT_TIMEZONE)
    return datetime.now(ZoneInfo(tz_name)).replace(tzinfo=None)
