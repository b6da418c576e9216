from datetime import datetime

from sqlalchemy.orm import validates

from vetclinic.extensions import db
from vetclinic.errors import CannotCancel, CannotReschedule, InvalidTransition
from vetclinic.scheduling import lifecycle
from vetclinic.utils.validators import normalize_time, validate_reason
from .base import TimestampMixin

ACTIVE_SLOT_CONDITION = db.text("status != 'cancelled'")


class Appointment(db.Model, TimestampMixin):
    __tablename__ = 'appointments'
    __table_args__ = (
        # At most one non-cancelled appointment per clinic slot
        db.Index(
            'uq_appointments_active_slot', 'date', 'time',
            unique=True,
            postgresql_where=ACTIVE_SLOT_CONDITION,
            sqlite_where=ACTIVE_SLOT_CONDITION,
        ),
        db.Index('ix_appointments_date_status', 'date', 'status'),
        db.Index('ix_appointments_type_status', 'appointment_type', 'status'),
        db.Index('ix_appointments_veterinarian_date', 'veterinarian_id', 'date'),
    )

    id = db.Column(db.Integer, primary_key=True)
    pet_id = db.Column(db.Integer, db.ForeignKey('pets.id'), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    veterinarian_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    appointment_type = db.Column(db.String(30), nullable=False)  # consultation, surgery, ...
    date = db.Column(db.Date, nullable=False, index=True)  # clinic-local day
    time = db.Column(db.String(5), nullable=False)  # e.g., "09:30"
    duration_minutes = db.Column(db.Integer, nullable=False, default=30)

    priority = db.Column(db.String(10), nullable=False, default='normal')
    is_emergency = db.Column(db.Boolean, nullable=False, default=False)

    reason = db.Column(db.String(500), nullable=False)
    symptoms = db.Column(db.Text)
    notes = db.Column(db.Text, default='')
    veterinarian_notes = db.Column(db.Text)
    fasting_required = db.Column(db.Boolean, nullable=False, default=False)
    preparation_instructions = db.Column(db.Text)

    # Clinical outcome
    diagnosis = db.Column(db.Text)
    treatment = db.Column(db.Text)
    medications = db.Column(db.JSON, nullable=False, default=list)  # [{name, dose, frequency, duration, instructions}]
    attachments = db.Column(db.JSON, nullable=False, default=list)  # [{name, url, kind}]

    # Status: pending, confirmed, in_progress, completed, cancelled, no_show
    status = db.Column(db.String(20), nullable=False, default=lifecycle.PENDING, index=True)

    cancellation_reason = db.Column(db.String(500))
    cancelled_at = db.Column(db.DateTime)
    cancelled_by = db.Column(db.String(20))  # customer, veterinarian, system

    reminder_sent_at = db.Column(db.DateTime)

    follow_up_required = db.Column(db.Boolean, nullable=False, default=False)
    follow_up_date = db.Column(db.Date)

    created_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    modified_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    customer = db.relationship('User', foreign_keys=[customer_id], lazy=True)
    veterinarian = db.relationship('User', foreign_keys=[veterinarian_id], lazy=True)

    @validates('time')
    def _validate_time(self, key, value):
        return normalize_time(value)

    @validates('reason')
    def _validate_reason(self, key, value):
        return validate_reason(value)

    # --- Derived state (never stored) ---

    @property
    def starts_at(self):
        return lifecycle.starts_at(self.date, self.time)

    @property
    def is_active(self):
        return lifecycle.is_active(self.status)

    @property
    def reminder_sent(self):
        return self.reminder_sent_at is not None

    def has_passed(self, now):
        return lifecycle.has_passed(self.date, self.time, now)

    def can_be_cancelled(self, now, notice=lifecycle.DEFAULT_CANCELLATION_NOTICE):
        return lifecycle.can_be_cancelled(self.status, self.date, self.time, now, notice)

    def can_be_rescheduled(self, now):
        return lifecycle.can_be_rescheduled(self.status, self.date, self.time, now)

    # --- Transitions ---

    def confirm(self, actor_id, veterinarian_notes=None):
        self.status = lifecycle.next_status(self.status, lifecycle.CONFIRM)
        self.veterinarian_id = actor_id
        if veterinarian_notes:
            self.veterinarian_notes = veterinarian_notes
        self.modified_by_id = actor_id

    def start(self, actor_id):
        self.status = lifecycle.next_status(self.status, lifecycle.START)
        self.veterinarian_id = actor_id
        self.modified_by_id = actor_id

    def complete(self, actor_id, outcome):
        """``outcome`` holds already-validated clinical fields."""
        self.status = lifecycle.next_status(self.status, lifecycle.COMPLETE)
        self.veterinarian_id = actor_id

        for field in ('diagnosis', 'treatment', 'veterinarian_notes'):
            if outcome.get(field):
                setattr(self, field, outcome[field])
        if outcome.get('medications') is not None:
            self.medications = outcome['medications']
        if outcome.get('attachments') is not None:
            self.attachments = list(self.attachments or []) + outcome['attachments']
        if outcome.get('follow_up_required'):
            self.follow_up_required = True
            self.follow_up_date = outcome.get('follow_up_date')

        self.modified_by_id = actor_id

    def cancel(self, reason, cancelled_by, actor_id, now, notice=lifecycle.DEFAULT_CANCELLATION_NOTICE):
        if not self.can_be_cancelled(now, notice):
            hours = int(notice.total_seconds() // 3600)
            raise CannotCancel(
                f'This appointment cannot be cancelled (at least {hours} hours notice required)'
            )
        self.status = lifecycle.next_status(self.status, lifecycle.CANCEL)
        self.cancellation_reason = reason
        self.cancelled_at = now
        self.cancelled_by = cancelled_by
        self.modified_by_id = actor_id

    def reschedule(self, reason, actor_id, now):
        """Back to pending; the new slot itself is written by ``claim_slot``."""
        if not self.can_be_rescheduled(now):
            raise CannotReschedule()
        self.status = lifecycle.next_status(self.status, lifecycle.RESCHEDULE)
        note = f'Rescheduled: {reason}' if reason else 'Rescheduled'
        self.notes = f'{self.notes}\n{note}' if self.notes else note
        self.reminder_sent_at = None
        self.modified_by_id = actor_id

    def mark_no_show(self, actor_id, now):
        if self.status == lifecycle.CONFIRMED and not self.has_passed(now):
            raise InvalidTransition('Only confirmed appointments whose time has passed can be marked as no-show')
        self.status = lifecycle.next_status(self.status, lifecycle.MARK_NO_SHOW)
        self.modified_by_id = actor_id

    def to_dict(self, now=None):
        data = {
            'id': self.id,
            'pet_id': self.pet_id,
            'pet': self.pet.to_summary() if self.pet else None,
            'customer_id': self.customer_id,
            'customer': self.customer.to_summary() if self.customer else None,
            'veterinarian_id': self.veterinarian_id,
            'appointment_type': self.appointment_type,
            'date': self.date.isoformat() if self.date else None,
            'time': self.time,
            'duration_minutes': self.duration_minutes,
            'priority': self.priority,
            'is_emergency': self.is_emergency,
            'reason': self.reason,
            'symptoms': self.symptoms,
            'notes': self.notes,
            'veterinarian_notes': self.veterinarian_notes,
            'fasting_required': self.fasting_required,
            'preparation_instructions': self.preparation_instructions,
            'diagnosis': self.diagnosis,
            'treatment': self.treatment,
            'medications': self.medications or [],
            'attachments': self.attachments or [],
            'status': self.status,
            'cancellation_reason': self.cancellation_reason,
            'cancelled_at': self.cancelled_at.isoformat() if self.cancelled_at else None,
            'cancelled_by': self.cancelled_by,
            'reminder_sent': self.reminder_sent,
            'reminder_sent_at': self.reminder_sent_at.isoformat() if self.reminder_sent_at else None,
            'follow_up_required': self.follow_up_required,
            'follow_up_date': self.follow_up_date.isoformat() if self.follow_up_date else None,
            'created_by_id': self.created_by_id,
            'modified_by_id': self.modified_by_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if now is not None:
            data['is_today'] = lifecycle.is_today(self.date, now)
            data['has_passed'] = self.has_passed(now)
            data['time_until'] = lifecycle.describe_time_until(self.date, self.time, now)
            data['can_be_cancelled'] = self.can_be_cancelled(now)
            data['can_be_rescheduled'] = self.can_be_rescheduled(now)
            data['allowed_actions'] = lifecycle.allowed_actions(self.status)
        return data

    def __repr__(self):
        return f"<Appointment {self.id} pet={self.pet_id} on {self.date} {self.time} [{self.status}]>"
