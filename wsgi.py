"""
WSGI entry point for production deployment
Run with: gunicorn wsgi:application
"""
import os

from vetclinic import create_app

# FLASK_CONFIG picks a config class explicitly; otherwise FLASK_ENV decides
application = app = create_app(os.getenv('FLASK_CONFIG'))
