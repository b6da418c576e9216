"""
Appointment field validators.

Each validator returns the cleaned value or raises ValidationError with a
message naming the offending field.
"""
import re
from datetime import date, datetime

from vetclinic.errors import ValidationError

TIME_PATTERN = re.compile(r'^([01]?\d|2[0-3]):([0-5]\d)$')

APPOINTMENT_TYPES = (
    'consultation', 'surgery', 'vaccination', 'emergency',
    'checkup', 'dental_cleaning', 'sterilization', 'review',
)
ATTACHMENT_KINDS = ('image', 'document', 'result', 'xray', 'other')

REASON_MIN_LENGTH = 10
REASON_MAX_LENGTH = 500
TEXT_MAX_LENGTH = 1000


def parse_date(value, field_name='date'):
    """
    Parse a YYYY-MM-DD string (or pass a date through) to a day-granular date.
    """
    if value is None or value == '':
        raise ValidationError(f'Field "{field_name}" is required')
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError(f'Invalid {field_name} format. Use YYYY-MM-DD')


def normalize_time(value, field_name='time'):
    """Validate HH:MM (24h) and return it zero-padded, e.g. '9:05' -> '09:05'."""
    if not value:
        raise ValidationError(f'Field "{field_name}" is required')
    match = TIME_PATTERN.match(str(value).strip())
    if not match:
        raise ValidationError(f'Invalid {field_name} format. Use HH:MM (e.g., 10:30)')
    return f'{int(match.group(1)):02d}:{match.group(2)}'


def _stripped(value, field_name):
    """Missing is empty; anything other than a string is rejected."""
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValidationError(f'{field_name} must be text')
    return value.strip()


def validate_reason(value):
    reason = _stripped(value, 'Reason')
    if len(reason) < REASON_MIN_LENGTH:
        raise ValidationError(f'Reason is required (minimum {REASON_MIN_LENGTH} characters)')
    if len(reason) > REASON_MAX_LENGTH:
        raise ValidationError(f'Reason must be at most {REASON_MAX_LENGTH} characters')
    return reason


def validate_text(value, field_name, max_length=TEXT_MAX_LENGTH):
    if value is None:
        return None
    text = str(value).strip()
    if len(text) > max_length:
        raise ValidationError(f'{field_name} must be at most {max_length} characters')
    return text


def validate_choice(value, choices, field_name):
    if value not in choices:
        raise ValidationError(f'Invalid {field_name}. Valid values: {", ".join(choices)}')
    return value


def parse_bool(value):
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes')
    return bool(value)


def validate_medications(items):
    if items is None:
        return None
    if not isinstance(items, list):
        raise ValidationError('medications must be a list')

    cleaned = []
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f'medications[{idx}] must be an object')
        entry = {}
        for key in ('name', 'dose', 'frequency', 'duration'):
            text = _stripped(item.get(key), f'medications[{idx}].{key}')
            if not text:
                raise ValidationError(f'medications[{idx}].{key} is required')
            entry[key] = text
        entry['instructions'] = _stripped(item.get('instructions'), f'medications[{idx}].instructions')
        cleaned.append(entry)
    return cleaned


def validate_attachments(items):
    if items is None:
        return None
    if not isinstance(items, list):
        raise ValidationError('attachments must be a list')

    cleaned = []
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f'attachments[{idx}] must be an object')
        name = _stripped(item.get('name'), f'attachments[{idx}].name')
        url = _stripped(item.get('url'), f'attachments[{idx}].url')
        if not name or not url:
            raise ValidationError(f'attachments[{idx}] requires name and url')
        kind = _stripped(item.get('kind'), f'attachments[{idx}].kind') or 'document'
        validate_choice(kind, ATTACHMENT_KINDS, f'attachments[{idx}].kind')
        cleaned.append({'name': name, 'url': url, 'kind': kind})
    return cleaned


def validate_pagination(page, limit, default_limit=10, max_limit=100):
    try:
        page = int(page) if page is not None else 1
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(limit) if limit is not None else default_limit
    except (TypeError, ValueError):
        limit = default_limit
    return max(1, page), min(max(1, limit), max_limit)
