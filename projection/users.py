"""Identity resolution: actor address to User record."""

import logging

from store import UnitOfWork
from .models import User, normalize_address

logger = logging.getLogger(__name__)

async def resolve_user(uow: UnitOfWork, address: str) -> User:
    """Return the User for an address, creating it on first sight.

    Relationship lists are appended to on the returned instance, so callers
    must resolve before they mutate.
    """
    address = normalize_address(address)
    user = await uow.get(User, address)
    if user is None:
        user = User(id=address)
        uow.add(user)
        logger.debug(f"Created user {address}")
    return user
