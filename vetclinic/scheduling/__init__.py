"""
Scheduling core: slot catalog, lifecycle graph, authorization policy.

The conflict guard (``vetclinic.scheduling.conflict``) depends on the models
and is imported directly where needed.
"""
from .slots import ClinicCalendar, Slot, available_slots, generate_day_slots, is_nominal_slot
from .policy import Actor, SYSTEM_ACTOR, authorize, can
from .clock import clinic_now

__all__ = [
    "ClinicCalendar",
    "Slot",
    "available_slots",
    "generate_day_slots",
    "is_nominal_slot",
    "Actor",
    "SYSTEM_ACTOR",
    "authorize",
    "can",
    "clinic_now",
]
