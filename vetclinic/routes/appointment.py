from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from vetclinic.errors import SchedulingError
from vetclinic.scheduling.clock import clinic_now
from vetclinic.services import appointment_service as booking
from vetclinic.utils.decorators import get_current_actor, require_role

appointment_bp = Blueprint('appointment', __name__, url_prefix='/api/appointments')


@appointment_bp.errorhandler(SchedulingError)
def handle_scheduling_error(error):
    return jsonify(error.to_dict()), error.status_code


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    return data


def _serialize(appointment):
    return appointment.to_dict(now=clinic_now())


@appointment_bp.route('', methods=['POST'])
@jwt_required()
@require_role('customer', 'admin')
def create_appointment():
    """
    Book a new appointment
    Access: pet owner, admin
    """
    data = _json_body()
    appointment = booking.create_appointment(
        get_current_actor(),
        pet_id=data.get('pet_id'),
        appointment_type=data.get('appointment_type'),
        date=data.get('date'),
        time=data.get('time'),
        reason=data.get('reason'),
        symptoms=data.get('symptoms'),
        notes=data.get('notes'),
        is_emergency=data.get('is_emergency', False),
        fasting_required=data.get('fasting_required', False),
        preparation_instructions=data.get('preparation_instructions'),
    )
    return jsonify({
        'success': True,
        'data': _serialize(appointment),
        'message': 'Appointment booked successfully'
    }), 201


@appointment_bp.route('', methods=['GET'])
@jwt_required()
def list_appointments():
    """
    List appointments with filters and pagination.
    Query params:
        date: YYYY-MM-DD (optional)
        status, appointment_type, pet_id: filters (optional)
        page, limit: Pagination
    """
    result = booking.list_appointments(
        get_current_actor(),
        date=request.args.get('date', type=str),
        status=request.args.get('status', type=str),
        appointment_type=request.args.get('appointment_type', type=str),
        pet_id=request.args.get('pet_id', type=str),
        page=request.args.get('page', 1, type=int),
        limit=request.args.get('limit', 10, type=int),
    )
    return jsonify({
        'success': True,
        'data': [_serialize(a) for a in result['items']],
        'pagination': result['pagination']
    }), 200


@appointment_bp.route('/available-slots/<string:day>', methods=['GET'])
@jwt_required()
def available_slots(day):
    """Free slots of a day (YYYY-MM-DD)."""
    slots = booking.list_available_slots(day)
    return jsonify({
        'success': True,
        'date': day,
        'data': [slot.to_dict() for slot in slots],
        'total_available': len(slots)
    }), 200


@appointment_bp.route('/admin/stats', methods=['GET'])
@jwt_required()
@require_role('admin')
def appointment_stats():
    stats = booking.appointment_stats(
        get_current_actor(),
        start_date=request.args.get('start_date', type=str),
        end_date=request.args.get('end_date', type=str),
    )
    return jsonify({'success': True, 'data': stats}), 200


@appointment_bp.route('/<int:appointment_id>', methods=['GET'])
@jwt_required()
def get_appointment(appointment_id):
    appointment = booking.get_appointment(get_current_actor(), appointment_id)
    return jsonify({'success': True, 'data': _serialize(appointment)}), 200


@appointment_bp.route('/<int:appointment_id>', methods=['PUT'])
@jwt_required()
def update_appointment(appointment_id):
    """
    Update appointment information
    Access: owner (pending only), veterinarian, admin
    """
    appointment = booking.update_appointment(get_current_actor(), appointment_id, _json_body())
    return jsonify({
        'success': True,
        'data': _serialize(appointment),
        'message': 'Appointment updated successfully'
    }), 200


@appointment_bp.route('/<int:appointment_id>', methods=['DELETE'])
@jwt_required()
def cancel_appointment(appointment_id):
    """
    Cancel appointment (appointments are never deleted).
    Access: owner, veterinarian, admin
    """
    data = _json_body()
    booking.cancel_appointment(get_current_actor(), appointment_id, reason=data.get('reason'))
    return jsonify({
        'success': True,
        'message': 'Appointment cancelled successfully'
    }), 200


@appointment_bp.route('/<int:appointment_id>/reschedule', methods=['POST'])
@jwt_required()
def reschedule_appointment(appointment_id):
    data = _json_body()
    appointment = booking.reschedule_appointment(
        get_current_actor(),
        appointment_id,
        new_date=data.get('date'),
        new_time=data.get('time'),
        reason=data.get('reason'),
    )
    return jsonify({
        'success': True,
        'data': _serialize(appointment),
        'message': 'Appointment rescheduled successfully'
    }), 200


@appointment_bp.route('/<int:appointment_id>/confirm', methods=['POST'])
@jwt_required()
@require_role('veterinarian', 'admin')
def confirm_appointment(appointment_id):
    data = _json_body()
    appointment = booking.confirm_appointment(
        get_current_actor(), appointment_id, veterinarian_notes=data.get('veterinarian_notes')
    )
    return jsonify({
        'success': True,
        'data': _serialize(appointment),
        'message': 'Appointment confirmed'
    }), 200


@appointment_bp.route('/<int:appointment_id>/start', methods=['POST'])
@jwt_required()
@require_role('veterinarian', 'admin')
def start_appointment(appointment_id):
    appointment = booking.start_appointment(get_current_actor(), appointment_id)
    return jsonify({
        'success': True,
        'data': _serialize(appointment),
        'message': 'Appointment started'
    }), 200


@appointment_bp.route('/<int:appointment_id>/complete', methods=['POST'])
@jwt_required()
@require_role('veterinarian', 'admin')
def complete_appointment(appointment_id):
    appointment = booking.complete_appointment(get_current_actor(), appointment_id, _json_body())
    return jsonify({
        'success': True,
        'data': _serialize(appointment),
        'message': 'Appointment completed'
    }), 200


@appointment_bp.route('/<int:appointment_id>/no-show', methods=['POST'])
@jwt_required()
@require_role('veterinarian', 'admin')
def mark_no_show(appointment_id):
    appointment = booking.mark_no_show(get_current_actor(), appointment_id)
    return jsonify({
        'success': True,
        'data': _serialize(appointment),
        'message': 'Appointment marked as no-show'
    }), 200


@appointment_bp.route('/<int:appointment_id>/reminder', methods=['POST'])
@jwt_required()
@require_role('admin')
def send_reminder(appointment_id):
    """
    Email a reminder for a confirmed appointment
    Access: admin only
    """
    booking.send_reminder(get_current_actor(), appointment_id)
    return jsonify({
        'success': True,
        'message': 'Reminder sent successfully'
    }), 200
