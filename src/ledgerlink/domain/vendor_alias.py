"""Vendor alias domain service."""

from __future__ import annotations

from typing import Optional

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ledgerlink.database.base import Database
from ledgerlink.domain.entities import VendorAlias as VendorAliasEntity, ALIAS_MATCH_TYPES, ALIAS_CONTAINS
from ledgerlink.domain.errors import NotFoundError, ValidationError, cross_owner_link
from ledgerlink.utils.vendor_resolver import VendorDisplayInfo, get_vendor_display_info


class VendorAliasService:
    """Service for managing owner-scoped vendor alias rules."""

    def __init__(self, db: Database):
        """Initialize vendor alias service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_alias(
        self,
        owner_id: int,
        alias_pattern: str,
        canonical_name: str,
        match_type: str = ALIAS_CONTAINS,
        priority: int = 0,
    ) -> int:
        """Create a vendor alias.

        Args:
            owner_id: Owner the alias belongs to
            alias_pattern: Text to look for in descriptions (case-insensitive)
            canonical_name: Vendor name the pattern resolves to
            match_type: exact, starts_with, ends_with or contains
            priority: Higher priority wins when several aliases match

        Returns:
            Alias ID

        Raises:
            ValidationError: If pattern/name is empty or match type is unknown
        """
        if not alias_pattern or not alias_pattern.strip():
            raise ValidationError("Alias pattern cannot be empty")
        if not canonical_name or not canonical_name.strip():
            raise ValidationError("Canonical name cannot be empty")
        if match_type not in ALIAS_MATCH_TYPES:
            raise ValidationError(f"Match type must be one of: {', '.join(ALIAS_MATCH_TYPES)}")

        return self.db.create_vendor_alias(
            owner_id=owner_id,
            alias_pattern=alias_pattern.strip(),
            match_type=match_type,
            canonical_name=canonical_name.strip(),
            priority=priority,
        )

    def list_aliases(self, owner_id: int) -> list[VendorAliasEntity]:
        """List an owner's aliases in creation order."""
        return self.db.list_vendor_aliases(owner_id)

    def get_alias(self, alias_id: int) -> Optional[VendorAliasEntity]:
        """Get alias by ID."""
        return self.db.get_vendor_alias(alias_id)

    def delete_alias(self, owner_id: int, alias_id: int) -> None:
        """Delete one of the owner's aliases.

        Raises:
            NotFoundError: If the alias doesn't exist
            ValidationError: If the alias belongs to another owner
        """
        alias = self.db.get_vendor_alias(alias_id)
        if alias is None:
            raise NotFoundError(f"Vendor alias {alias_id} not found")
        if alias.owner_id != owner_id:
            raise ValidationError(cross_owner_link("Vendor alias", alias_id, owner_id))
        self.db.delete_vendor_alias(alias_id)

    def display_info(self, owner_id: int, description: str) -> VendorDisplayInfo:
        """Resolve a description to its display vendor for an owner."""
        return get_vendor_display_info(description, self.list_aliases(owner_id))
