"""
Demo seed data, loaded with ``flask seed-demo``.
"""
import logging

import click
from sqlalchemy.exc import SQLAlchemyError

from vetclinic.extensions import db
from vetclinic.models import Pet, User

logger = logging.getLogger(__name__)

DEMO_USERS = [
    {"name": "Clinic Admin", "email": "admin@vetclinic.com", "phone": "3000000001", "role": "admin"},
    {"name": "Dra. Laura Gómez", "email": "vet@vetclinic.com", "phone": "3000000002", "role": "veterinarian"},
    {"name": "Carlos Pérez", "email": "carlos@example.com", "phone": "3000000003", "role": "customer"},
    {"name": "Ana Torres", "email": "ana@example.com", "phone": "3000000004", "role": "customer"},
]

DEMO_PETS = [
    {"owner": "carlos@example.com", "name": "Max", "species": "dog", "breed": "Labrador"},
    {"owner": "carlos@example.com", "name": "Luna", "species": "cat", "breed": "Siamese"},
    {"owner": "ana@example.com", "name": "Rocky", "species": "dog", "breed": "Beagle"},
]


def seed_demo_data():
    """Create demo users and pets if they do not exist yet. Returns (users, pets) created."""
    users_created = 0
    pets_created = 0
    try:
        users = {}
        for data in DEMO_USERS:
            user = User.query.filter_by(email=data["email"]).first()
            if user is None:
                user = User(**data)
                db.session.add(user)
                users_created += 1
            users[data["email"]] = user
        db.session.flush()

        for data in DEMO_PETS:
            owner = users[data["owner"]]
            if Pet.query.filter_by(owner_id=owner.id, name=data["name"]).first():
                continue
            db.session.add(Pet(
                owner_id=owner.id,
                name=data["name"],
                species=data["species"],
                breed=data["breed"],
            ))
            pets_created += 1
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logger.info("Seeded %d demo users and %d demo pets", users_created, pets_created)
    return users_created, pets_created


def register_commands(app):
    @app.cli.command('seed-demo')
    def seed_demo():
        """Create demo users and pets."""
        users, pets = seed_demo_data()
        click.echo(f"Created {users} users and {pets} pets")
