from vetclinic.extensions import db
from .base import TimestampMixin


class Pet(db.Model, TimestampMixin):
    __tablename__ = 'pets'

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    name = db.Column(db.String(100), nullable=False)
    species = db.Column(db.String(50))  # dog, cat, bird...
    breed = db.Column(db.String(100))
    image_url = db.Column(db.String(500))

    # Soft delete (pets are never hard-deleted while they have history)
    deleted_at = db.Column(db.DateTime, nullable=True, index=True)

    appointments = db.relationship('Appointment', backref='pet', lazy='dynamic')

    def to_summary(self):
        return {
            'id': self.id,
            'name': self.name,
            'species': self.species,
            'breed': self.breed,
            'image_url': self.image_url,
        }

    def __repr__(self):
        return f"<Pet {self.name} ({self.species}) owner={self.owner_id}>"
