from vetclinic.extensions import db
from .base import TimestampMixin


class User(db.Model, TimestampMixin):
    """
    Clinic user as seen by the scheduler.

    Accounts, credentials and token issuance live in the auth service; this
    table only carries what booking and reminders need.
    """
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    phone = db.Column(db.String(20))

    # Role - 'customer', 'veterinarian' or 'admin'
    role = db.Column(db.String(20), nullable=False, default='customer', index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    pets = db.relationship('Pet', backref='owner', lazy='dynamic')

    def to_summary(self):
        return {'id': self.id, 'name': self.name, 'email': self.email, 'phone': self.phone}

    def __repr__(self):
        return f"<User {self.name} ({self.email}) - {self.role}>"
