"""Invoice domain service.

Uploaded files pass the file-level duplicate gate before they are recorded.
Extraction results become an invoice plus its line items; line items that
repeat stored ones are dropped, and invoices resembling another file's
invoice are reported (or refused, under the block policy).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Any, Sequence

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ledgerlink.database.base import Database
from ledgerlink.domain.duplicates import DuplicateDetector, FileDuplicateCheckResult, FileDuplicateMatch
from ledgerlink.domain.entities import (
    BASE_CURRENCY,
    MATCH_MANUAL,
    MATCH_UNMATCHED,
    METHOD_MANUAL,
    ExtractedLineItem,
    Invoice as InvoiceEntity,
    InvoiceLineItem,
)
from ledgerlink.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    cross_owner_link,
    duplicate_file,
    duplicate_invoice,
    invoice_not_found,
    line_item_not_found,
    transaction_not_found,
)
from ledgerlink.domain.scoring import ELIGIBLE_TRANSACTION_TYPES
from ledgerlink.domain.settings import DuplicatePolicy
from ledgerlink.utils.date_parser import parse_optional_date
from ledgerlink.utils.hashing import HashStrategy

logger = logging.getLogger(__name__)

MANUAL_CONFIDENCE = 100


@dataclass(frozen=True)
class FileRegistration:
    """A recorded upload and the duplicate evidence found for it."""

    file_id: int
    duplicate_check: FileDuplicateCheckResult

    def to_dict(self) -> dict[str, Any]:
        return {"fileId": self.file_id, "duplicateCheck": self.duplicate_check.to_dict()}


@dataclass
class InvoiceImportResult:
    """Outcome of recording one extraction result."""

    invoice_id: int
    line_item_ids: list[int] = field(default_factory=list)
    duplicate_line_items: int = 0
    semantic_duplicates: list[FileDuplicateMatch] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "invoiceId": self.invoice_id,
            "lineItemIds": list(self.line_item_ids),
            "duplicateLineItems": self.duplicate_line_items,
            "semanticDuplicates": [match.to_dict() for match in self.semantic_duplicates],
        }


class InvoiceService:
    """Service for files, invoices and manual line item links."""

    def __init__(self, db: Database, hash_strategy: Optional[HashStrategy] = None):
        """Initialize invoice service.

        Args:
            db: Database instance
            hash_strategy: Strategy for file hashes
        """
        self.db = db
        self.detector = DuplicateDetector(db, hash_strategy)

    def register_file(
        self,
        owner_id: int,
        original_name: str,
        size_bytes: int,
        policy: DuplicatePolicy = DuplicatePolicy.WARN,
    ) -> FileRegistration:
        """Record an uploaded file after the duplicate check.

        Args:
            owner_id: Owner scope
            original_name: File name as uploaded
            size_bytes: File size
            policy: WARN records the file and reports matches, BLOCK refuses
                an exact duplicate

        Returns:
            FileRegistration with the new file ID and the evidence found

        Raises:
            ValidationError: If name is empty or size is negative
            ConflictError: If the policy is BLOCK and an identical file exists
        """
        if not original_name or not original_name.strip():
            raise ValidationError("File name cannot be empty")
        if size_bytes < 0:
            raise ValidationError("File size cannot be negative")

        check = self.detector.check_file_duplicate(owner_id, original_name, size_bytes)
        if check.is_exact and DuplicatePolicy(policy) == DuplicatePolicy.BLOCK:
            raise ConflictError(duplicate_file(original_name, check.matches[0].existing_file.id))
        if check.is_duplicate:
            logger.warning(
                "File '%s' for owner %s resembles %d existing file(s)", original_name, owner_id, len(check.matches)
            )

        file_id = self.db.create_file(owner_id, original_name, size_bytes, check.file_hash)
        return FileRegistration(file_id=file_id, duplicate_check=check)

    def record_extraction(
        self,
        owner_id: int,
        file_id: Optional[int],
        vendor_name: Optional[str],
        invoice_number: Optional[str],
        invoice_date: Optional[date],
        total_amount_agorot: Optional[int],
        line_items: Sequence[ExtractedLineItem],
        currency: str = BASE_CURRENCY,
        policy: DuplicatePolicy = DuplicatePolicy.WARN,
    ) -> InvoiceImportResult:
        """Store an extraction result as an invoice with its line items.

        Line items matching a stored line item on reference, date, amount
        and currency are not stored again.

        Raises:
            ValidationError: If the file belongs to another owner
            NotFoundError: If the file doesn't exist
            ConflictError: If the policy is BLOCK and another file holds a
                matching invoice
        """
        if file_id is not None:
            record = self.db.get_file(file_id)
            if record is None:
                raise NotFoundError(f"File {file_id} not found")
            if record.owner_id != owner_id:
                raise ValidationError(cross_owner_link("File", file_id, owner_id))

        semantic = self.detector.check_semantic_duplicate(
            owner_id, vendor_name, total_amount_agorot, invoice_date, exclude_file_id=file_id
        )
        if semantic and DuplicatePolicy(policy) == DuplicatePolicy.BLOCK:
            raise ConflictError(duplicate_invoice(vendor_name or "", semantic[0].existing_file.id))

        check = self.detector.check_line_item_duplicates(owner_id, line_items)

        invoice_id = self.db.create_invoice(
            owner_id=owner_id,
            file_id=file_id,
            vendor_name=vendor_name,
            invoice_number=invoice_number,
            invoice_date=invoice_date,
            total_amount_agorot=total_amount_agorot,
            currency=(currency or BASE_CURRENCY).upper(),
        )
        result = InvoiceImportResult(
            invoice_id=invoice_id, duplicate_line_items=check.duplicate_count, semantic_duplicates=semantic
        )

        for item in check.new_items:
            result.line_item_ids.append(
                self.db.create_line_item(
                    invoice_id=invoice_id,
                    description=item.description,
                    reference_id=item.reference_id,
                    transaction_date=item.date,
                    amount_agorot=item.amount,
                    currency=(item.currency or BASE_CURRENCY).upper(),
                    vat_rate=item.vat_rate,
                    vat_amount_agorot=item.vat_amount,
                )
            )

        logger.info(
            "Owner %s: invoice %s with %d line items (%d duplicates dropped)",
            owner_id,
            invoice_id,
            len(result.line_item_ids),
            result.duplicate_line_items,
        )
        return result

    def import_extraction(
        self,
        owner_id: int,
        extracted: "ExtractedInvoice",
        document_name: Optional[str] = None,
        document_size: Optional[int] = None,
        policy: DuplicatePolicy = DuplicatePolicy.WARN,
    ) -> tuple[Optional[FileRegistration], InvoiceImportResult]:
        """Register the source document (if any) and record its extraction.

        Under the block policy a semantic duplicate is refused before the
        document is registered, so a refused import leaves nothing behind.

        Returns:
            Tuple of (file registration or None, invoice import result)
        """
        if DuplicatePolicy(policy) == DuplicatePolicy.BLOCK:
            semantic = self.detector.check_semantic_duplicate(
                owner_id, extracted.vendor_name, extracted.total_amount_agorot, extracted.invoice_date
            )
            if semantic:
                raise ConflictError(duplicate_invoice(extracted.vendor_name or "", semantic[0].existing_file.id))

        registration = None
        if document_name is not None:
            registration = self.register_file(owner_id, document_name, document_size or 0, policy=policy)

        result = self.record_extraction(
            owner_id,
            registration.file_id if registration is not None else None,
            vendor_name=extracted.vendor_name,
            invoice_number=extracted.invoice_number,
            invoice_date=extracted.invoice_date,
            total_amount_agorot=extracted.total_amount_agorot,
            line_items=extracted.line_items,
            currency=extracted.currency,
            policy=policy,
        )
        return registration, result

    def get_invoice(self, owner_id: int, invoice_id: int) -> InvoiceEntity:
        """Get one of the owner's invoices or raise NotFoundError."""
        invoice = self.db.get_invoice(invoice_id)
        if invoice is None or invoice.owner_id != owner_id:
            raise NotFoundError(invoice_not_found(invoice_id))
        return invoice

    def list_invoices(self, owner_id: int) -> list[InvoiceEntity]:
        """List an owner's invoices."""
        return self.db.list_invoices(owner_id)

    def list_line_items(self, owner_id: int, invoice_id: int) -> list[InvoiceLineItem]:
        """List the line items of one of the owner's invoices."""
        self.get_invoice(owner_id, invoice_id)
        return self.db.list_line_items(invoice_id)

    def link_line_item(self, owner_id: int, line_item_id: int, transaction_id: int) -> None:
        """Manually link a line item to a transaction.

        Raises:
            NotFoundError: If the line item or transaction doesn't exist
            ValidationError: If either belongs to another owner or the
                transaction type can't back a line item
            ConflictError: If the transaction is linked to another line item
        """
        item = self._require_line_item(owner_id, line_item_id)

        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        if transaction.owner_id != owner_id:
            raise ValidationError(cross_owner_link("Transaction", transaction_id, owner_id))
        if transaction.transaction_type not in ELIGIBLE_TRANSACTION_TYPES:
            raise ValidationError(
                f"Transaction {transaction_id} is a {transaction.transaction_type} and can't back a line item"
            )

        holder = self.db.get_line_item_links(owner_id).get(transaction_id)
        if holder is not None and holder != line_item_id:
            raise ConflictError(f"Transaction {transaction_id} is already linked to line item {holder}")

        previous = item.transaction_id
        self.db.link_line_item(line_item_id, transaction_id, METHOD_MANUAL, MANUAL_CONFIDENCE)
        self.db.update_transaction_match(transaction_id, MATCH_MANUAL, MANUAL_CONFIDENCE)
        if previous is not None and previous != transaction_id:
            self.db.update_transaction_match(previous, MATCH_UNMATCHED, None)

    def unlink_line_item(self, owner_id: int, line_item_id: int) -> bool:
        """Clear a line item's link.

        Returns:
            True if the line item was linked
        """
        item = self._require_line_item(owner_id, line_item_id)
        if item.transaction_id is None:
            return False

        self.db.unlink_line_item(line_item_id)
        self.db.update_transaction_match(item.transaction_id, MATCH_UNMATCHED, None)
        return True

    def _require_line_item(self, owner_id: int, line_item_id: int) -> InvoiceLineItem:
        item = self.db.get_line_item(line_item_id)
        if item is None:
            raise NotFoundError(line_item_not_found(line_item_id))
        invoice = self.db.get_invoice(item.invoice_id)
        if invoice is None or invoice.owner_id != owner_id:
            raise ValidationError(cross_owner_link("Line item", line_item_id, owner_id))
        return item


@dataclass(frozen=True)
class ExtractedInvoice:
    """Invoice header and line items as delivered by document extraction."""

    vendor_name: Optional[str]
    invoice_number: Optional[str]
    invoice_date: Optional[date]
    total_amount_agorot: Optional[int]
    currency: str
    line_items: list[ExtractedLineItem]


def _minor_units(value: Any, name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer amount in minor units, got {value!r}")
    return value


def extracted_invoice_from_dict(data: dict[str, Any]) -> ExtractedInvoice:
    """Build an ExtractedInvoice from an extraction JSON document.

    Amounts must already be integer minor units; dates are ISO strings.

    Raises:
        ValidationError: If an amount is not an integer or a date is invalid
    """
    try:
        currency = (data.get("currency") or BASE_CURRENCY).upper()
        items = []
        for index, raw in enumerate(data.get("line_items") or [], start=1):
            items.append(
                ExtractedLineItem(
                    date=parse_optional_date(raw.get("date"), dayfirst=False),
                    description=raw.get("description"),
                    reference_id=raw.get("reference_id") or None,
                    amount=_minor_units(raw.get("amount"), f"Line item {index} amount"),
                    currency=(raw.get("currency") or currency).upper(),
                    vat_rate=raw.get("vat_rate"),
                    vat_amount=_minor_units(raw.get("vat_amount"), f"Line item {index} VAT amount"),
                )
            )
        return ExtractedInvoice(
            vendor_name=data.get("vendor_name"),
            invoice_number=data.get("invoice_number"),
            invoice_date=parse_optional_date(data.get("invoice_date"), dayfirst=False),
            total_amount_agorot=_minor_units(data.get("total_amount"), "Invoice total"),
            currency=currency,
            line_items=items,
        )
    except ValidationError:
        raise
    except ValueError as e:
        raise ValidationError(str(e))
