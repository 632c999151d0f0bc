# services/households.py
from __future__ import annotations

from models import Household, User
from services.errors import NotFoundError


async def get_owned_household(household_id: int, user: User) -> Household:
    """Admins see every household, everyone else only their own."""
    qs = Household.filter(id=household_id)
    if not user.is_admin:
        qs = qs.filter(owner_id=user.id)
    obj = await qs.first()
    if not obj:
        raise NotFoundError("Household not found or access denied")
    return obj
