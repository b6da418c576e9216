import os
from dotenv import load_dotenv

load_dotenv()


def _weekdays(value):
    """Parse a comma separated list of weekday numbers (Monday=0 ... Sunday=6)."""
    return [int(part) for part in value.split(',') if part.strip() != '']


class Config:
    """Base configuration"""
    SECRET_KEY = os.getenv('SECRET_KEY') or 'dev-secret-key-change-in-production'
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY') or SECRET_KEY

    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///vetclinic.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

    # Clinic calendar (static per deployment)
    CLINIC_TIMEZONE = os.getenv('CLINIC_TIMEZONE', 'America/Bogota')
    CLINIC_MORNING_START = os.getenv('CLINIC_MORNING_START', '07:00')
    CLINIC_MORNING_END = os.getenv('CLINIC_MORNING_END', '12:00')
    CLINIC_AFTERNOON_START = os.getenv('CLINIC_AFTERNOON_START', '14:00')
    CLINIC_AFTERNOON_END = os.getenv('CLINIC_AFTERNOON_END', '18:00')
    CLINIC_SLOT_INTERVAL_MINUTES = int(os.getenv('CLINIC_SLOT_INTERVAL_MINUTES', '30'))
    CLINIC_CLOSED_WEEKDAYS = _weekdays(os.getenv('CLINIC_CLOSED_WEEKDAYS', '6'))

    # Booking rules
    CANCELLATION_NOTICE_HOURS = int(os.getenv('CANCELLATION_NOTICE_HOURS', '2'))
    REMINDER_LEAD_HOURS = int(os.getenv('REMINDER_LEAD_HOURS', '24'))
    REMINDER_ON_CONFIRM = os.getenv('REMINDER_ON_CONFIRM', 'true').lower() == 'true'

    # Celery Configuration
    CELERY_BROKER_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
    CELERY_RESULT_BACKEND = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
    CELERY_ACCEPT_CONTENT = ['json']
    CELERY_TASK_SERIALIZER = 'json'
    CELERY_RESULT_SERIALIZER = 'json'
    CELERY_TIMEZONE = CLINIC_TIMEZONE
    CELERY_ENABLE_UTC = True
    CELERY_TASK_ALWAYS_EAGER = False

    # Browser clients allowed to call /api/ (comma separated, * for any)
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')
    CORS_MAX_AGE = 86400

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE = os.getenv('LOG_FILE', 'logs/app.log')

    # Email Configuration
    MAIL_SERVER = os.getenv('MAIL_SERVER', 'smtp.gmail.com')
    MAIL_PORT = int(os.getenv('MAIL_PORT', '587'))
    MAIL_USE_TLS = os.getenv('MAIL_USE_TLS', 'true').lower() == 'true'
    MAIL_USERNAME = os.getenv('MAIL_USERNAME')
    MAIL_PASSWORD = os.getenv('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.getenv('MAIL_DEFAULT_SENDER', 'citas@vetclinic.com')
    NOTIFICATION_TIMEOUT_SECONDS = int(os.getenv('NOTIFICATION_TIMEOUT_SECONDS', '10'))


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False

    # Ensure SECRET_KEY is set
    SECRET_KEY = os.getenv('SECRET_KEY')
    if os.getenv('FLASK_ENV') == 'production' and (
        not SECRET_KEY or SECRET_KEY == 'dev-secret-key-change-in-production'
    ):
        raise ValueError("SECRET_KEY environment variable must be set in production and must not be the default value")

    # Database connection pool for production
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 3600,
        'pool_size': 20,
        'max_overflow': 40,
    }

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'WARNING')


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEBUG = True
    SECRET_KEY = 'testing-secret-key'
    JWT_SECRET_KEY = 'testing-jwt-secret-key-with-enough-length'
    SQLALCHEMY_DATABASE_URI = os.getenv('TEST_DATABASE_URL', 'sqlite:///:memory:')
    SQLALCHEMY_ENGINE_OPTIONS = {}
    CELERY_TASK_ALWAYS_EAGER = True
    MAIL_USERNAME = None
    MAIL_PASSWORD = None


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config():
    """Get configuration based on FLASK_ENV"""
    env = os.getenv('FLASK_ENV', 'development')
    return config.get(env, config['default'])
