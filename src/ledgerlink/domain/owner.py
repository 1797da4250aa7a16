"""Owner domain service."""

from __future__ import annotations

import logging
from typing import Optional, Any

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ledgerlink.database.base import Database
from ledgerlink.domain.entities import Owner as OwnerEntity, OWNER_KINDS
from ledgerlink.domain.errors import ConflictError, NotFoundError, ValidationError, owner_not_found
from ledgerlink.domain.settings import MatchingSettings

logger = logging.getLogger(__name__)


class OwnerService:
    """Service for managing owner scopes and their matching settings."""

    def __init__(self, db: Database):
        """Initialize owner service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_owner(self, name: str, kind: str = "user") -> int:
        """Create a new owner.

        Args:
            name: Owner name (unique)
            kind: ``user`` or ``team``

        Returns:
            Owner ID

        Raises:
            ValidationError: If name is empty or kind is unknown
            ConflictError: If an owner with the same name exists
        """
        if not name or not name.strip():
            raise ValidationError("Owner name cannot be empty")
        if kind not in OWNER_KINDS:
            raise ValidationError(f"Owner kind must be one of: {', '.join(OWNER_KINDS)}")
        if self.db.get_owner_by_name(name) is not None:
            raise ConflictError(f"Owner with name '{name}' already exists")

        return self.db.create_owner(name=name, kind=kind)

    def get_owner(self, owner_id: int) -> Optional[OwnerEntity]:
        """Get owner by ID."""
        return self.db.get_owner(owner_id)

    def require_owner(self, owner_id: int) -> OwnerEntity:
        """Get owner by ID or raise NotFoundError."""
        owner = self.db.get_owner(owner_id)
        if owner is None:
            raise NotFoundError(owner_not_found(owner_id))
        return owner

    def list_owners(self) -> list[OwnerEntity]:
        """List all owners."""
        return self.db.list_owners()

    def get_settings(self, owner_id: int, base: Optional[MatchingSettings] = None) -> MatchingSettings:
        """Build the owner's effective matching settings.

        Args:
            owner_id: Owner ID
            base: Settings to apply the owner's overrides on (defaults if None)

        Returns:
            MatchingSettings with persisted overrides applied

        Raises:
            NotFoundError: If owner doesn't exist
        """
        self.require_owner(owner_id)
        overrides = self.db.get_owner_settings(owner_id)
        return (base or MatchingSettings()).with_overrides(**overrides)

    def update_settings(self, owner_id: int, **values: Any) -> MatchingSettings:
        """Persist matching overrides for an owner.

        Values are clamped before they are stored, so the stored overrides
        are always valid.

        Returns:
            The owner's effective settings after the update
        """
        self.require_owner(owner_id)
        requested = {key: value for key, value in values.items() if value is not None}
        if not requested:
            return self.get_settings(owner_id)

        current = self.get_settings(owner_id)
        updated = current.with_overrides(**requested)
        stored = {key: getattr(updated, key) for key in requested}
        # Clamping auto-approve to the candidate bar can move it too
        if "candidate_threshold" in requested:
            stored["auto_approve_threshold"] = updated.auto_approve_threshold

        logger.info("Updating settings for owner %s: %s", owner_id, stored)
        self.db.update_owner_settings(owner_id, **stored)
        return updated
