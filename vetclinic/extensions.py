from celery import Celery, Task
from flask import has_app_context
from flask_jwt_extended import JWTManager
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate


class FlaskAppContextTask(Task):
    """Make celery tasks work with Flask app context."""
    def __call__(self, *args, **kwargs):
        if has_app_context():
            return self.run(*args, **kwargs)
        with self.app.flask_app.app_context():
            return self.run(*args, **kwargs)


# Shared database, migration, auth and task queue instances
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
celery = Celery('vetclinic', task_cls=FlaskAppContextTask)
celery.flask_app = None
