"""
Authorization policy for appointment operations.

One capability check used by the booking service before any read of a single
appointment or any mutation. Callers are either the owner (the customer the
appointment or pet belongs to) or staff (veterinarian, admin).
"""
from dataclasses import dataclass
from typing import Optional

from vetclinic.errors import Unauthorized

CUSTOMER = 'customer'
VETERINARIAN = 'veterinarian'
ADMIN = 'admin'
SYSTEM = 'system'

ROLES = (CUSTOMER, VETERINARIAN, ADMIN, SYSTEM)
STAFF_ROLES = (VETERINARIAN, ADMIN, SYSTEM)

# Capabilities
VIEW = 'view'
BOOK = 'book'
EDIT = 'edit'
CANCEL = 'cancel'
RESCHEDULE = 'reschedule'
MANAGE = 'manage'          # confirm / start / complete / no-show
REMIND = 'remind'
VIEW_STATS = 'view_stats'

OWNER_CAPABILITIES = {VIEW, BOOK, EDIT, CANCEL, RESCHEDULE}
STAFF_CAPABILITIES = {VIEW, EDIT, CANCEL, RESCHEDULE, MANAGE}
ADMIN_CAPABILITIES = STAFF_CAPABILITIES | {BOOK, REMIND, VIEW_STATS}


@dataclass(frozen=True)
class Actor:
    """The identity performing an operation (supplied by the auth layer)."""
    id: Optional[int]
    role: str

    @property
    def is_admin(self):
        return self.role in (ADMIN, SYSTEM)

    @property
    def is_staff(self):
        return self.role in STAFF_ROLES

    @property
    def cancelled_by_label(self):
        if self.role == SYSTEM:
            return 'system'
        return 'veterinarian' if self.is_staff else 'customer'


SYSTEM_ACTOR = Actor(id=None, role=SYSTEM)


def capabilities_for(actor: Actor, owner_id=None):
    if actor.role not in ROLES:
        return set()
    if actor.is_admin:
        return set(ADMIN_CAPABILITIES)
    if actor.is_staff:
        return set(STAFF_CAPABILITIES)
    if owner_id is not None and actor.id == owner_id:
        return set(OWNER_CAPABILITIES)
    return set()


def can(actor: Actor, capability: str, owner_id=None) -> bool:
    return capability in capabilities_for(actor, owner_id)


def authorize(actor: Actor, capability: str, owner_id=None, message=None):
    """
    Raises:
        Unauthorized: if ``actor`` lacks ``capability`` on a resource owned by ``owner_id``
    """
    if not can(actor, capability, owner_id):
        raise Unauthorized(message or f'Not authorized to {capability.replace("_", " ")} this appointment')
