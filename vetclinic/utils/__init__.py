from .decorators import require_role, get_current_actor

__all__ = [
    # Decorators
    "require_role",
    "get_current_actor",
]
