from functools import wraps
from flask import jsonify
from flask_jwt_extended import get_jwt_identity, get_jwt

from vetclinic.scheduling.policy import Actor, ROLES, SYSTEM


def get_current_actor():
    """
    Build the acting identity from the JWT: the subject is the user id and
    the ``role`` claim carries the role. Must run under @jwt_required().
    """
    claims = get_jwt()
    try:
        user_id = int(get_jwt_identity())
    except (TypeError, ValueError):
        user_id = None
    return Actor(id=user_id, role=claims.get("role", "customer"))


def require_role(*roles):
    """
    Decorator to require specific roles
    Usage: @require_role('veterinarian', 'admin')
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            """
            Require that the current JWT-authenticated user has one of the given roles.
            Must be used together with @jwt_required() on the route.
            """
            actor = get_current_actor()
            if actor.id is None or actor.role not in ROLES or actor.role == SYSTEM:
                return jsonify({
                    'success': False,
                    'error': 'Authentication required',
                    'code': 'UNAUTHENTICATED'
                }), 401

            if actor.role not in roles:
                return jsonify({
                    'success': False,
                    'error': f'Permission denied. Required roles: {", ".join(roles)}',
                    'code': 'UNAUTHORIZED'
                }), 403

            return f(*args, **kwargs)
        return decorated_function
    return decorator
