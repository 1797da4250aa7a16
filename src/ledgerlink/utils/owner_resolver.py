"""Utility for resolving owner names to IDs."""

from ledgerlink.domain.errors import NotFoundError, owner_not_found
from ledgerlink.domain.owner import OwnerService


def resolve_owner(owner_service: OwnerService, owner: str | int) -> int:
    """Resolve owner name or ID to owner ID.

    Args:
        owner_service: OwnerService instance
        owner: Owner name (str) or ID (int or string representation of int)

    Returns:
        Owner ID

    Raises:
        NotFoundError: If owner is not found
    """
    if isinstance(owner, int):
        if owner_service.get_owner(owner) is None:
            raise NotFoundError(owner_not_found(owner))
        return owner

    # Numeric strings are IDs, unless an owner is literally named that way
    by_name = owner_service.db.get_owner_by_name(owner)
    if by_name is not None:
        return by_name.id

    try:
        owner_id = int(owner)
    except (ValueError, TypeError):
        raise NotFoundError(owner_not_found(owner))

    if owner_service.get_owner(owner_id) is None:
        raise NotFoundError(owner_not_found(owner_id))
    return owner_id
