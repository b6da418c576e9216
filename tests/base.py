"""
Shared fixtures for the database backed test suites.

Every test gets a fresh app on an in-memory SQLite database with two
customers (each owning one pet), a veterinarian and an admin.
"""
import unittest
from datetime import date, datetime

from vetclinic import create_app
from vetclinic.extensions import db
from vetclinic.models import Pet, User
from vetclinic.scheduling.policy import Actor
from vetclinic.services import appointment_service

# Monday 2026-10-19, 08:00 clinic time
NOW = datetime(2026, 10, 19, 8, 0)
TODAY = NOW.date()
TOMORROW = date(2026, 10, 20)       # Tuesday
SATURDAY = date(2026, 10, 24)
SUNDAY = date(2026, 10, 25)
YESTERDAY = date(2026, 10, 18)


class ClinicTestCase(unittest.TestCase):

    def setUp(self):
        self.app = create_app('testing')
        self.app.config['REMINDER_ON_CONFIRM'] = False
        self.ctx = self.app.app_context()
        self.ctx.push()
        db.create_all()

        self.customer = User(name='Carlos Pérez', email='carlos@example.com', role='customer')
        self.other_customer = User(name='Ana Torres', email='ana@example.com', role='customer')
        self.vet = User(name='Laura Gómez', email='vet@vetclinic.com', role='veterinarian')
        self.admin = User(name='Clinic Admin', email='admin@vetclinic.com', role='admin')
        db.session.add_all([self.customer, self.other_customer, self.vet, self.admin])
        db.session.commit()

        self.pet = Pet(owner_id=self.customer.id, name='Max', species='dog', breed='Labrador')
        self.other_pet = Pet(owner_id=self.other_customer.id, name='Rocky', species='dog')
        db.session.add_all([self.pet, self.other_pet])
        db.session.commit()

        self.customer_actor = Actor(self.customer.id, 'customer')
        self.other_actor = Actor(self.other_customer.id, 'customer')
        self.vet_actor = Actor(self.vet.id, 'veterinarian')
        self.admin_actor = Actor(self.admin.id, 'admin')

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.ctx.pop()

    def book(self, day=TOMORROW, time='09:00', actor=None, pet=None, now=NOW, **fields):
        """Create a pending appointment through the booking service."""
        fields.setdefault('appointment_type', 'consultation')
        fields.setdefault('reason', 'Annual checkup visit')
        return appointment_service.create_appointment(
            actor or self.customer_actor,
            pet_id=(pet or self.pet).id,
            date=day.isoformat(),
            time=time,
            now=now,
            **fields
        )
