#!/usr/bin/env python3
"""
Celery Worker Entry Point
Run with: celery -A celery_worker.celery worker --beat --loglevel=info
Or: python celery_worker.py
"""
from celery.schedules import crontab

from vetclinic import create_app
from vetclinic.extensions import celery

# Create Flask app to initialize Celery
app = create_app()

# Import tasks so Celery can discover them
from tasks import reminder_tasks  # noqa: E402,F401

celery.conf.beat_schedule = {
    'sweep-due-reminders': {
        'task': 'tasks.sweep_due_reminders',
        'schedule': crontab(minute=0),  # hourly
    },
}

if __name__ == '__main__':
    # For development: run worker directly
    celery.worker_main([
        'worker',
        '--beat',
        '--loglevel=info',
        '--concurrency=4'
    ])
