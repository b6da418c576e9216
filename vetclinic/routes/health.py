"""
Health check endpoints for monitoring and load balancers
"""
from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError
from vetclinic.extensions import db
from vetclinic.scheduling.clock import clinic_now
from vetclinic.scheduling.slots import ClinicCalendar
from datetime import datetime

health_bp = Blueprint('health', __name__, url_prefix='/health')


@health_bp.route('', methods=['GET'])
@health_bp.route('/ping', methods=['GET'])
def health_check():
    """Basic health check - no database connection"""
    calendar = ClinicCalendar.from_config(current_app.config)
    now = clinic_now()
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.utcnow().isoformat(),
        'service': 'vetclinic-scheduling',
        'timezone': current_app.config.get('CLINIC_TIMEZONE'),
        'clinic_time': now.isoformat(timespec='minutes'),
        'open_today': not calendar.is_closed(now.date()),
        'schedule': calendar.describe()
    }), 200


@health_bp.route('/ready', methods=['GET'])
def readiness_check():
    """Readiness check - includes database connection"""
    try:
        db.session.execute(db.text('SELECT 1'))
        db_status = 'connected'
    except SQLAlchemyError as e:
        current_app.logger.error(f"Readiness check failed: {e}")
        db_status = 'error'

    return jsonify({
        'status': 'ready' if db_status == 'connected' else 'not_ready',
        'database': db_status,
        'timestamp': datetime.utcnow().isoformat()
    }), 200 if db_status == 'connected' else 503


@health_bp.route('/live', methods=['GET'])
def liveness_check():
    """Liveness check for Kubernetes/containers"""
    return jsonify({
        'status': 'alive',
        'timestamp': datetime.utcnow().isoformat()
    }), 200
