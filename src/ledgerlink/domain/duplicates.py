"""Duplicate detection at file, transaction and line-item level.

Each detector partitions an incoming batch into duplicates (with evidence)
and new records. Lookups that fail are logged and treated as "no existing
records" so that nothing is ever dropped because of a storage hiccup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Any, Sequence

from sqlalchemy.exc import SQLAlchemyError

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ledgerlink.database.base import Database
from ledgerlink.domain.entities import (
    BASE_CURRENCY,
    ExtractedLineItem,
    FileRecord,
    InvoiceLineItem,
    ParsedCreditCardTransaction,
    ParsedTransaction,
)
from ledgerlink.utils.hashing import HashStrategy, generate_file_hash, generate_transaction_hash
from ledgerlink.utils.merchant import is_same_merchant
from ledgerlink.utils.serialization import to_jsonable

logger = logging.getLogger(__name__)

EXACT_FILE_CONFIDENCE = 100
RENAMED_FILE_CONFIDENCE = 75
SEMANTIC_FILE_CONFIDENCE = 85
SEMANTIC_AMOUNT_TOLERANCE_PERCENT = 2
SEMANTIC_DATE_WINDOW_DAYS = 2

MATCH_EXACT = "exact"
MATCH_SEMANTIC = "semantic"
MATCH_EXISTING = "existing"
MATCH_SAME_BATCH = "same_batch"
MATCH_EXACT_REFERENCE = "exact_reference"


@dataclass(frozen=True)
class FileDuplicateMatch:
    """Existing file that the checked file appears to duplicate."""

    existing_file: FileRecord
    match_type: str
    confidence: int
    match_reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "existingFile": to_jsonable(self.existing_file),
            "matchType": self.match_type,
            "confidence": self.confidence,
            "matchReason": self.match_reason,
        }


@dataclass(frozen=True)
class FileDuplicateCheckResult:
    """Outcome of a file-level check."""

    file_hash: str
    matches: list[FileDuplicateMatch] = field(default_factory=list)

    @property
    def is_duplicate(self) -> bool:
        return bool(self.matches)

    @property
    def is_exact(self) -> bool:
        return any(match.match_type == MATCH_EXACT for match in self.matches)

    def to_dict(self) -> dict[str, Any]:
        return {
            "isDuplicate": self.is_duplicate,
            "fileHash": self.file_hash,
            "matches": [match.to_dict() for match in self.matches],
        }


@dataclass(frozen=True)
class HashedTransaction:
    """Parsed statement row paired with its deduplication hash."""

    record: ParsedTransaction | ParsedCreditCardTransaction
    hash: str


@dataclass(frozen=True)
class TransactionDuplicateMatch:
    """Statement row that is already stored, or repeats an earlier row of the batch."""

    new_transaction: HashedTransaction
    match_type: str
    match_reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "newTransaction": to_jsonable(self.new_transaction),
            "matchType": self.match_type,
            "matchReason": self.match_reason,
        }


@dataclass(frozen=True)
class TransactionDuplicateCheckResult:
    """Partition of a statement batch into duplicates and rows to insert."""

    matches: list[TransactionDuplicateMatch]
    new_items: list[HashedTransaction]

    @property
    def total_items(self) -> int:
        return len(self.matches) + len(self.new_items)

    @property
    def duplicate_count(self) -> int:
        return len(self.matches)

    @property
    def new_count(self) -> int:
        return len(self.new_items)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalItems": self.total_items,
            "duplicateCount": self.duplicate_count,
            "newCount": self.new_count,
            "matches": [match.to_dict() for match in self.matches],
            "newItems": to_jsonable(self.new_items),
        }


@dataclass(frozen=True)
class LineItemDuplicateMatch:
    """Extracted line item that matches stored line items exactly."""

    new_item: ExtractedLineItem
    existing_items: list[InvoiceLineItem]
    match_type: str = MATCH_EXACT_REFERENCE
    match_reason: str = "Same reference, date, amount and currency"

    def to_dict(self) -> dict[str, Any]:
        return {
            "newItem": to_jsonable(self.new_item),
            "existingItems": to_jsonable(self.existing_items),
            "matchType": self.match_type,
            "matchReason": self.match_reason,
        }


@dataclass(frozen=True)
class LineItemDuplicateCheckResult:
    """Partition of extracted line items into duplicates and new items."""

    matches: list[LineItemDuplicateMatch]
    new_items: list[ExtractedLineItem]

    @property
    def total_items(self) -> int:
        return len(self.matches) + len(self.new_items)

    @property
    def duplicate_count(self) -> int:
        return len(self.matches)

    @property
    def new_count(self) -> int:
        return len(self.new_items)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalItems": self.total_items,
            "duplicateCount": self.duplicate_count,
            "newCount": self.new_count,
            "matches": [match.to_dict() for match in self.matches],
            "newItems": to_jsonable(self.new_items),
        }


def line_item_key(
    reference_id: Optional[str],
    transaction_date: Optional[date],
    amount: Optional[int],
    currency: Optional[str],
) -> str:
    """Composite key ``reference|date|amount|currency`` for line-item lookup."""
    return "|".join(
        [
            reference_id or "",
            transaction_date.isoformat() if transaction_date is not None else "",
            "" if amount is None else str(int(amount)),
            currency or BASE_CURRENCY,
        ]
    )


def amounts_within_percent(first: int, second: int, tolerance_percent: float) -> bool:
    """Whether two amounts differ by at most ``tolerance_percent`` of the larger."""
    larger = max(abs(first), abs(second))
    if larger == 0:
        return True
    return abs(first - second) * 100 <= tolerance_percent * larger


class DuplicateDetector:
    """Owner-scoped duplicate checks against stored records."""

    def __init__(self, db: Database, hash_strategy: Optional[HashStrategy] = None):
        """Initialize duplicate detector.

        Args:
            db: Database instance
            hash_strategy: Strategy used for transaction and file hashes
        """
        self.db = db
        self.hash_strategy = hash_strategy

    def check_file_duplicate(self, owner_id: int, original_name: str, size_bytes: int) -> FileDuplicateCheckResult:
        """Check an upload against the owner's files.

        An exact hash match (same name and size) is reported with confidence
        100. Only when there is none, files with the same name but another
        size are reported with confidence 75.
        """
        file_hash = generate_file_hash(original_name, size_bytes, self.hash_strategy)
        matches: list[FileDuplicateMatch] = []

        try:
            for existing in self.db.find_files_by_hash(owner_id, file_hash):
                matches.append(
                    FileDuplicateMatch(
                        existing_file=existing,
                        match_type=MATCH_EXACT,
                        confidence=EXACT_FILE_CONFIDENCE,
                        match_reason="Same filename and size",
                    )
                )

            if not matches:
                for existing in self.db.find_files_by_name(owner_id, original_name):
                    if existing.file_hash == file_hash:
                        continue
                    matches.append(
                        FileDuplicateMatch(
                            existing_file=existing,
                            match_type=MATCH_SEMANTIC,
                            confidence=RENAMED_FILE_CONFIDENCE,
                            match_reason="Same filename (different size - possibly modified)",
                        )
                    )
        except SQLAlchemyError:
            logger.warning("File duplicate lookup failed for owner %s, treating as new", owner_id, exc_info=True)
            self.db.rollback()
            matches = []

        return FileDuplicateCheckResult(file_hash=file_hash, matches=matches)

    def check_semantic_duplicate(
        self,
        owner_id: int,
        vendor_name: Optional[str],
        total_amount_agorot: Optional[int],
        invoice_date: Optional[date],
        exclude_file_id: Optional[int] = None,
    ) -> list[FileDuplicateMatch]:
        """Find invoices of other files with the same vendor, amount and date.

        Same merchant, amount within 2% and date within 2 days. Returns an
        empty list when any of the three inputs is missing.
        """
        if not vendor_name or not total_amount_agorot or invoice_date is None:
            return []

        low = total_amount_agorot * (100 - SEMANTIC_AMOUNT_TOLERANCE_PERCENT) // 100
        high = -(-total_amount_agorot * (100 + SEMANTIC_AMOUNT_TOLERANCE_PERCENT) // 100)

        try:
            candidates = self.db.find_invoices_by_amount_range(
                owner_id, min(low, high), max(low, high), exclude_file_id=exclude_file_id
            )
            matches: list[FileDuplicateMatch] = []
            for invoice in candidates:
                if invoice.file_id is None or invoice.file_id == exclude_file_id:
                    continue
                if not invoice.vendor_name or not is_same_merchant(vendor_name, invoice.vendor_name):
                    continue
                if invoice.invoice_date is None:
                    continue
                if abs((invoice.invoice_date - invoice_date).days) > SEMANTIC_DATE_WINDOW_DAYS:
                    continue
                if not amounts_within_percent(
                    total_amount_agorot, invoice.total_amount_agorot, SEMANTIC_AMOUNT_TOLERANCE_PERCENT
                ):
                    continue

                existing_file = self.db.get_file(invoice.file_id)
                if existing_file is None:
                    continue
                matches.append(
                    FileDuplicateMatch(
                        existing_file=existing_file,
                        match_type=MATCH_SEMANTIC,
                        confidence=SEMANTIC_FILE_CONFIDENCE,
                        match_reason=f"Same vendor ({invoice.vendor_name}), similar amount and date",
                    )
                )
            return matches
        except SQLAlchemyError:
            logger.warning("Semantic duplicate lookup failed for owner %s, treating as new", owner_id, exc_info=True)
            self.db.rollback()
            return []

    def hash_transactions(
        self, transactions: Sequence[ParsedTransaction | ParsedCreditCardTransaction]
    ) -> list[HashedTransaction]:
        """Pair each parsed row with its deduplication hash."""
        return [HashedTransaction(record=tx, hash=generate_transaction_hash(tx, self.hash_strategy)) for tx in transactions]

    def check_transaction_duplicates(
        self,
        owner_id: int,
        transactions: Sequence[ParsedTransaction | ParsedCreditCardTransaction],
        transaction_type: Optional[str] = None,
    ) -> TransactionDuplicateCheckResult:
        """Partition parsed statement rows into stored duplicates and new rows.

        Stored hashes are fetched with one batched query. A row repeating an
        earlier row of the same batch is a duplicate of that first occurrence.

        Args:
            owner_id: Owner scope
            transactions: Parsed bank or card rows
            transaction_type: Optionally narrow the lookup to one ledger type

        Returns:
            TransactionDuplicateCheckResult
        """
        hashed = self.hash_transactions(transactions)
        if not hashed:
            return TransactionDuplicateCheckResult(matches=[], new_items=[])

        try:
            existing = self.db.get_existing_hashes(owner_id, [item.hash for item in hashed], transaction_type)
        except SQLAlchemyError:
            logger.warning(
                "Transaction duplicate lookup failed for owner %s, treating %d rows as new",
                owner_id,
                len(hashed),
                exc_info=True,
            )
            self.db.rollback()
            existing = set()

        matches: list[TransactionDuplicateMatch] = []
        new_items: list[HashedTransaction] = []
        seen: set[str] = set()
        for item in hashed:
            if item.hash in existing:
                matches.append(
                    TransactionDuplicateMatch(
                        new_transaction=item,
                        match_type=MATCH_EXISTING,
                        match_reason="Already imported",
                    )
                )
            elif item.hash in seen:
                matches.append(
                    TransactionDuplicateMatch(
                        new_transaction=item,
                        match_type=MATCH_SAME_BATCH,
                        match_reason="Repeated row in the same import",
                    )
                )
            else:
                seen.add(item.hash)
                new_items.append(item)

        logger.debug(
            "Owner %s: %d rows checked, %d duplicates", owner_id, len(hashed), len(matches)
        )
        return TransactionDuplicateCheckResult(matches=matches, new_items=new_items)

    def check_line_item_duplicates(
        self, owner_id: int, line_items: Sequence[ExtractedLineItem]
    ) -> LineItemDuplicateCheckResult:
        """Partition extracted line items into stored duplicates and new items.

        A duplicate matches a stored line item of the same owner on
        reference, date, amount and currency. Items without a reference are
        always new.
        """
        referenced = [item for item in line_items if item.reference_id]
        if not referenced:
            return LineItemDuplicateCheckResult(matches=[], new_items=list(line_items))

        try:
            stored = self.db.find_line_items_by_references(owner_id, [item.reference_id for item in referenced])
        except SQLAlchemyError:
            logger.warning(
                "Line item duplicate lookup failed for owner %s, treating %d items as new",
                owner_id,
                len(line_items),
                exc_info=True,
            )
            self.db.rollback()
            stored = []

        by_key: dict[str, list[InvoiceLineItem]] = {}
        for existing in stored:
            key = line_item_key(
                existing.reference_id, existing.transaction_date, existing.amount_agorot, existing.currency
            )
            by_key.setdefault(key, []).append(existing)

        matches: list[LineItemDuplicateMatch] = []
        new_items: list[ExtractedLineItem] = []
        for item in line_items:
            if not item.reference_id:
                new_items.append(item)
                continue
            key = line_item_key(item.reference_id, item.date, item.amount, item.currency)
            if key in by_key:
                matches.append(LineItemDuplicateMatch(new_item=item, existing_items=by_key[key]))
            else:
                new_items.append(item)

        return LineItemDuplicateCheckResult(matches=matches, new_items=new_items)
