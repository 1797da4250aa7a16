"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Optional, Any, Iterable
from datetime import date

# Import entities directly to avoid circular import through domain/__init__.py
from ledgerlink.domain.entities import (
    Owner,
    CreditCard,
    Transaction,
    FileRecord,
    Invoice,
    InvoiceLineItem,
    VendorAlias,
    CCBankMatchResult,
)


class Database(ABC):
    """Abstract database interface for ledgerlink.

    Every lookup that returns owner data takes the owner id explicitly;
    implementations must never return rows of another owner.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def rollback(self) -> None:
        """Discard uncommitted changes after a failed write."""
        pass

    # Owner operations
    @abstractmethod
    def create_owner(self, name: str, kind: str) -> int:
        """Create a new owner. Returns owner ID."""
        pass

    @abstractmethod
    def get_owner(self, owner_id: int) -> Optional[Owner]:
        """Get owner by ID."""
        pass

    @abstractmethod
    def get_owner_by_name(self, name: str) -> Optional[Owner]:
        """Get owner by name."""
        pass

    @abstractmethod
    def list_owners(self) -> list[Owner]:
        """List all owners."""
        pass

    @abstractmethod
    def get_owner_settings(self, owner_id: int) -> dict[str, Any]:
        """Get the owner's persisted matching overrides (None = default)."""
        pass

    @abstractmethod
    def update_owner_settings(self, owner_id: int, **values: Any) -> None:
        """Persist matching overrides for an owner."""
        pass

    # Credit card operations
    @abstractmethod
    def get_or_create_credit_card(self, owner_id: int, card_last_four: str, card_name: Optional[str] = None) -> int:
        """Return the card ID for (owner, last four), creating it if missing."""
        pass

    @abstractmethod
    def get_credit_card(self, card_id: int) -> Optional[CreditCard]:
        """Get credit card by ID."""
        pass

    @abstractmethod
    def list_credit_cards(self, owner_id: int) -> list[CreditCard]:
        """List an owner's credit cards."""
        pass

    # Transaction operations
    @abstractmethod
    def insert_transaction_ignore_duplicate(self, owner_id: int, hash: str, **fields: Any) -> Optional[int]:
        """Insert a ledger row unless (owner_id, hash) already exists.

        Returns:
            The new transaction ID, or None if the row was a duplicate
        """
        pass

    @abstractmethod
    def get_existing_hashes(
        self, owner_id: int, hashes: Iterable[str], transaction_type: Optional[str] = None
    ) -> set[str]:
        """Return the subset of hashes already stored for the owner."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        owner_id: int,
        transaction_types: Optional[Iterable[str]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Transaction]:
        """List an owner's transactions ordered by (date, id)."""
        pass

    @abstractmethod
    def list_unlinked_purchases(self, owner_id: int) -> list[Transaction]:
        """Card purchases with no settlement link, ordered by (date, id)."""
        pass

    @abstractmethod
    def list_linked_purchases(self, bank_transaction_id: int) -> list[Transaction]:
        """Card purchases currently settled by a bank charge."""
        pass

    @abstractmethod
    def link_purchase(
        self, transaction_id: int, bank_transaction_id: int, match_status: str, match_confidence: Optional[int]
    ) -> None:
        """Set the settlement link of a card purchase."""
        pass

    @abstractmethod
    def unlink_purchase(self, transaction_id: int) -> None:
        """Clear the settlement link of a card purchase."""
        pass

    @abstractmethod
    def set_transaction_credit_card(self, transaction_id: int, credit_card_id: Optional[int]) -> None:
        """Set the credit card of a transaction."""
        pass

    @abstractmethod
    def update_transaction_match(
        self, transaction_id: int, match_status: str, match_confidence: Optional[int]
    ) -> None:
        """Update a transaction's match status and confidence."""
        pass

    # File operations
    @abstractmethod
    def create_file(self, owner_id: int, original_name: str, size_bytes: int, file_hash: str) -> int:
        """Create a file record. Returns file ID."""
        pass

    @abstractmethod
    def get_file(self, file_id: int) -> Optional[FileRecord]:
        """Get file by ID."""
        pass

    @abstractmethod
    def find_files_by_hash(self, owner_id: int, file_hash: str) -> list[FileRecord]:
        """Owner's files with exactly this hash."""
        pass

    @abstractmethod
    def find_files_by_name(self, owner_id: int, original_name: str) -> list[FileRecord]:
        """Owner's files with exactly this original name."""
        pass

    # Invoice operations
    @abstractmethod
    def create_invoice(
        self,
        owner_id: int,
        file_id: Optional[int],
        vendor_name: Optional[str],
        invoice_number: Optional[str],
        invoice_date: Optional[date],
        total_amount_agorot: Optional[int],
        currency: str,
    ) -> int:
        """Create an invoice. Returns invoice ID."""
        pass

    @abstractmethod
    def get_invoice(self, invoice_id: int) -> Optional[Invoice]:
        """Get invoice by ID."""
        pass

    @abstractmethod
    def list_invoices(self, owner_id: int) -> list[Invoice]:
        """List an owner's invoices ordered by ID."""
        pass

    @abstractmethod
    def find_invoices_by_amount_range(
        self, owner_id: int, min_amount: int, max_amount: int, exclude_file_id: Optional[int] = None
    ) -> list[Invoice]:
        """Owner's invoices whose total lies in [min_amount, max_amount]."""
        pass

    # Line item operations
    @abstractmethod
    def create_line_item(
        self,
        invoice_id: int,
        description: Optional[str],
        reference_id: Optional[str],
        transaction_date: Optional[date],
        amount_agorot: Optional[int],
        currency: str,
        vat_rate: Optional[float] = None,
        vat_amount_agorot: Optional[int] = None,
    ) -> int:
        """Create a line item. Returns line item ID."""
        pass

    @abstractmethod
    def get_line_item(self, line_item_id: int) -> Optional[InvoiceLineItem]:
        """Get line item by ID."""
        pass

    @abstractmethod
    def list_line_items(self, invoice_id: int) -> list[InvoiceLineItem]:
        """List an invoice's line items in creation order."""
        pass

    @abstractmethod
    def find_line_items_by_references(self, owner_id: int, reference_ids: Iterable[str]) -> list[InvoiceLineItem]:
        """Owner's line items whose reference_id is one of the given values."""
        pass

    @abstractmethod
    def get_line_item_links(self, owner_id: int) -> dict[int, int]:
        """Map transaction ID -> line item ID for the owner's linked line items."""
        pass

    @abstractmethod
    def link_line_item(
        self, line_item_id: int, transaction_id: int, match_method: str, match_confidence: Optional[int]
    ) -> None:
        """Link a line item to a transaction."""
        pass

    @abstractmethod
    def unlink_line_item(self, line_item_id: int) -> None:
        """Clear a line item's transaction link."""
        pass

    # Vendor alias operations
    @abstractmethod
    def create_vendor_alias(
        self, owner_id: int, alias_pattern: str, match_type: str, canonical_name: str, priority: int = 0
    ) -> int:
        """Create a vendor alias. Returns alias ID."""
        pass

    @abstractmethod
    def get_vendor_alias(self, alias_id: int) -> Optional[VendorAlias]:
        """Get vendor alias by ID."""
        pass

    @abstractmethod
    def list_vendor_aliases(self, owner_id: int) -> list[VendorAlias]:
        """List an owner's vendor aliases in creation order."""
        pass

    @abstractmethod
    def delete_vendor_alias(self, alias_id: int) -> None:
        """Delete a vendor alias."""
        pass

    # CC-bank match result operations
    @abstractmethod
    def get_match_result(self, match_id: int) -> Optional[CCBankMatchResult]:
        """Get match result by ID."""
        pass

    @abstractmethod
    def get_match_result_for_bank_transaction(self, bank_transaction_id: int) -> Optional[CCBankMatchResult]:
        """Get the aggregate row of a bank charge, if any."""
        pass

    @abstractmethod
    def save_match_result(
        self,
        owner_id: int,
        bank_transaction_id: int,
        card_last_four: str,
        charge_date: date,
        total_cc_amount_agorot: int,
        bank_amount_agorot: int,
        discrepancy_agorot: int,
        cc_transaction_count: int,
        match_confidence: int,
    ) -> int:
        """Insert or overwrite the aggregate of a bank charge. Returns match ID.

        An existing row keeps its review status.
        """
        pass

    @abstractmethod
    def delete_match_result(self, match_id: int) -> None:
        """Delete a match result."""
        pass

    @abstractmethod
    def update_match_status(self, match_id: int, status: str) -> None:
        """Set the review status of a match result."""
        pass

    @abstractmethod
    def list_match_results(self, owner_id: int, status: Optional[str] = None) -> list[CCBankMatchResult]:
        """List an owner's match results, newest charge first."""
        pass
