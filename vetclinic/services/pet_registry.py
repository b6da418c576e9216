"""
Pet Registry collaborator: resolves a pet reference to its owner.
"""
from vetclinic.errors import PetNotFound
from vetclinic.models import Pet


def find_pet(pet_id):
    """
    Returns the (non-deleted) Pet.

    Raises:
        PetNotFound: if the pet does not exist
    """
    try:
        pet_id = int(pet_id)
    except (TypeError, ValueError):
        raise PetNotFound(f'Pet with ID {pet_id} not found')

    pet = Pet.query.filter(Pet.id == pet_id, Pet.deleted_at.is_(None)).first()
    if not pet:
        raise PetNotFound(f'Pet with ID {pet_id} not found')
    return pet
