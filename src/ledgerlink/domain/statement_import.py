"""Statement import domain service."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Any, Callable, Sequence

from sqlalchemy.exc import SQLAlchemyError

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ledgerlink.database.base import Database
from ledgerlink.domain.duplicates import DuplicateDetector, HashedTransaction
from ledgerlink.domain.entities import (
    BANK_CC_CHARGE,
    BANK_REGULAR,
    BASE_CURRENCY,
    CC_PURCHASE,
    ParsedCreditCardTransaction,
    ParsedTransaction,
)
from ledgerlink.domain.errors import ValidationError
from ledgerlink.utils.amount_parser import parse_amount
from ledgerlink.utils.card_detector import detect_credit_card_charge
from ledgerlink.utils.date_parser import parse_date, parse_optional_date
from ledgerlink.utils.hashing import HashStrategy, generate_unique_hash

logger = logging.getLogger(__name__)

# Accepted header spellings per field, compared case-insensitively
BANK_COLUMNS = {
    "date": ("date", "transaction date", "תאריך"),
    "value_date": ("value date", "value_date", "תאריך ערך"),
    "description": ("description", "details", "תיאור"),
    "reference": ("reference", "ref", "אסמכתא"),
    "amount": ("amount", "סכום"),
    "balance": ("balance", "יתרה"),
}
CARD_COLUMNS = {
    "date": ("date", "purchase date", "תאריך עסקה"),
    "billing_date": ("billing date", "billing_date", "charge date", "תאריך חיוב"),
    "merchant": ("merchant", "merchant name", "description", "שם בית העסק"),
    "amount": ("amount", "charge amount", "סכום חיוב"),
    "card_last_four": ("card", "card last four", "card_last_four", "כרטיס"),
    "foreign_amount": ("foreign amount", "foreign_amount", "סכום מקורי"),
    "foreign_currency": ("foreign currency", "foreign_currency", "currency", "מטבע"),
    "transaction_type": ("type", "transaction type", "סוג עסקה"),
    "notes": ("notes", "הערות"),
}
BANK_REQUIRED = ("date", "description", "amount")
CARD_REQUIRED = ("date", "merchant", "amount", "card_last_four")


@dataclass
class ImportResult:
    """Outcome of importing one statement batch."""

    total_items: int = 0
    imported: int = 0
    duplicates: int = 0
    skipped: int = 0
    transaction_ids: list[int] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalItems": self.total_items,
            "imported": self.imported,
            "duplicateCount": self.duplicates,
            "skipped": self.skipped,
            "transactionIds": list(self.transaction_ids),
            "errors": list(self.errors),
        }


def _column_map(fieldnames: Sequence[str], columns: dict[str, tuple[str, ...]]) -> dict[str, str]:
    """Map field name -> CSV header for the headers present in a file."""
    by_header = {name.strip().lower(): name for name in fieldnames if name}
    mapping = {}
    for field_name, spellings in columns.items():
        for spelling in spellings:
            if spelling in by_header:
                mapping[field_name] = by_header[spelling]
                break
    return mapping


def _open_rows(csv_file_path: str, columns: dict[str, tuple[str, ...]], required: Sequence[str]):
    csv_path = Path(csv_file_path)
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_file_path}")

    with open(csv_path, "r", encoding="utf-8-sig") as f:
        sample = f.read(1024)
        f.seek(0)
        try:
            delimiter = csv.Sniffer().sniff(sample, delimiters=",;\t").delimiter
        except csv.Error:
            delimiter = ","

        reader = csv.DictReader(f, delimiter=delimiter)
        if reader.fieldnames is None:
            raise ValidationError("CSV file has no columns")

        mapping = _column_map(reader.fieldnames, columns)
        missing = [name for name in required if name not in mapping]
        if missing:
            raise ValidationError(f"CSV file missing required columns: {', '.join(missing)}")

        # Header is row 1
        for row_num, row in enumerate(reader, start=2):
            values = {}
            for field_name, header in mapping.items():
                raw = row.get(header)
                values[field_name] = raw.strip() if raw and raw.strip() else None
            yield row_num, values


def read_bank_csv(csv_file_path: str, dayfirst: bool = True) -> tuple[list[ParsedTransaction], list[str]]:
    """Read a bank statement CSV export.

    Args:
        csv_file_path: Path to CSV file
        dayfirst: Interpret ambiguous dates as day-first

    Returns:
        Tuple of (parsed rows, row-level error messages)

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If required columns are missing
    """
    rows: list[ParsedTransaction] = []
    errors: list[str] = []

    for row_num, values in _open_rows(csv_file_path, BANK_COLUMNS, BANK_REQUIRED):
        missing = [name for name in BANK_REQUIRED if not values.get(name)]
        if missing:
            errors.append(f"Row {row_num}: Missing {', '.join(missing)}")
            continue
        try:
            rows.append(
                ParsedTransaction(
                    date=parse_date(values["date"], dayfirst=dayfirst),
                    value_date=parse_optional_date(values.get("value_date"), dayfirst=dayfirst),
                    description=values["description"],
                    reference=values.get("reference"),
                    amount_agorot=parse_amount(values["amount"]),
                    balance_agorot=parse_amount(values["balance"]) if values.get("balance") else None,
                )
            )
        except ValueError as e:
            errors.append(f"Row {row_num}: {e}")

    return rows, errors


def read_card_csv(
    csv_file_path: str, dayfirst: bool = True, card_last_four: Optional[str] = None
) -> tuple[list[ParsedCreditCardTransaction], list[str]]:
    """Read a credit card statement CSV export.

    Card exports list charges as positive numbers and refunds as negative
    ones. Both are negated so that purchases are debits like bank rows.

    Args:
        csv_file_path: Path to CSV file
        dayfirst: Interpret ambiguous dates as day-first
        card_last_four: Card for files without a card column

    Returns:
        Tuple of (parsed rows, row-level error messages)
    """
    required = CARD_REQUIRED if card_last_four is None else tuple(c for c in CARD_REQUIRED if c != "card_last_four")
    rows: list[ParsedCreditCardTransaction] = []
    errors: list[str] = []

    for row_num, values in _open_rows(csv_file_path, CARD_COLUMNS, required):
        if card_last_four is not None and not values.get("card_last_four"):
            values["card_last_four"] = card_last_four
        missing = [name for name in CARD_REQUIRED if not values.get(name)]
        if missing:
            errors.append(f"Row {row_num}: Missing {', '.join(missing)}")
            continue
        try:
            amount = parse_amount(values["amount"])
            foreign_amount = parse_amount(values["foreign_amount"]) if values.get("foreign_amount") else None
            foreign_currency = (values.get("foreign_currency") or "").upper() or None
            if foreign_currency == BASE_CURRENCY:
                foreign_amount = foreign_currency = None
            card = "".join(ch for ch in values["card_last_four"] if ch.isdigit())[-4:]
            if len(card) != 4:
                raise ValueError(f"Invalid card number '{values['card_last_four']}'")
            rows.append(
                ParsedCreditCardTransaction(
                    date=parse_date(values["date"], dayfirst=dayfirst),
                    billing_date=parse_optional_date(values.get("billing_date"), dayfirst=dayfirst),
                    merchant_name=values["merchant"],
                    amount_agorot=-amount,
                    card_last_four=card,
                    foreign_amount=-foreign_amount if foreign_amount is not None else None,
                    foreign_currency=foreign_currency,
                    transaction_type=values.get("transaction_type"),
                    notes=values.get("notes"),
                )
            )
        except ValueError as e:
            errors.append(f"Row {row_num}: {e}")

    return rows, errors


class StatementImportService:
    """Service for importing parsed bank and credit card statements."""

    def __init__(self, db: Database, hash_strategy: Optional[HashStrategy] = None):
        """Initialize statement import service.

        Args:
            db: Database instance
            hash_strategy: Strategy for deduplication hashes
        """
        self.db = db
        self.detector = DuplicateDetector(db, hash_strategy)

    def import_bank_transactions(
        self, owner_id: int, transactions: Sequence[ParsedTransaction], keep_duplicates: bool = False
    ) -> ImportResult:
        """Import bank statement rows.

        Rows whose description names a card are stored as card charges,
        everything else as regular bank rows.

        Args:
            owner_id: Owner scope
            transactions: Parsed bank rows in statement order
            keep_duplicates: Store duplicate rows too, under a derived hash

        Returns:
            ImportResult; bad rows and storage errors are recorded per row
        """

        def fields(tx: ParsedTransaction) -> dict[str, Any]:
            return dict(
                transaction_type=BANK_CC_CHARGE if detect_credit_card_charge(tx.description) else BANK_REGULAR,
                date=tx.date,
                value_date=tx.value_date,
                description=tx.description,
                reference=tx.reference,
                amount_agorot=tx.amount_agorot,
                balance_agorot=tx.balance_agorot,
            )

        result = self._import(owner_id, transactions, fields, keep_duplicates)
        logger.info(
            "Owner %s: imported %d bank rows, %d duplicates, %d skipped",
            owner_id,
            result.imported,
            result.duplicates,
            result.skipped,
        )
        return result

    def import_credit_card_transactions(
        self, owner_id: int, transactions: Sequence[ParsedCreditCardTransaction], keep_duplicates: bool = False
    ) -> ImportResult:
        """Import credit card statement rows as card purchases.

        The billing date becomes the row's value date, which the CC-bank
        matcher settles against.
        """
        card_ids: dict[str, int] = {}

        def fields(tx: ParsedCreditCardTransaction) -> dict[str, Any]:
            if tx.card_last_four not in card_ids:
                card_ids[tx.card_last_four] = self.db.get_or_create_credit_card(owner_id, tx.card_last_four)
            return dict(
                transaction_type=CC_PURCHASE,
                date=tx.date,
                value_date=tx.billing_date,
                description=tx.merchant_name,
                amount_agorot=tx.amount_agorot,
                foreign_amount_cents=tx.foreign_amount,
                foreign_currency=tx.foreign_currency.upper() if tx.foreign_currency else None,
                credit_card_id=card_ids[tx.card_last_four],
            )

        result = self._import(owner_id, transactions, fields, keep_duplicates)
        logger.info(
            "Owner %s: imported %d card rows, %d duplicates, %d skipped",
            owner_id,
            result.imported,
            result.duplicates,
            result.skipped,
        )
        return result

    def _import(
        self,
        owner_id: int,
        transactions: Sequence[ParsedTransaction | ParsedCreditCardTransaction],
        fields: Callable[[Any], dict[str, Any]],
        keep_duplicates: bool,
    ) -> ImportResult:
        result = ImportResult(total_items=len(transactions))

        valid = []
        for index, tx in enumerate(transactions, start=1):
            if tx.date is None:
                result.skipped += 1
                result.errors.append(f"Row {index}: Missing date")
            elif tx.amount_agorot is None:
                result.skipped += 1
                result.errors.append(f"Row {index}: Missing amount")
            else:
                valid.append(tx)

        check = self.detector.check_transaction_duplicates(owner_id, valid)
        result.duplicates = check.duplicate_count

        to_insert = list(check.new_items)
        if keep_duplicates:
            to_insert.extend(
                HashedTransaction(record=match.new_transaction.record, hash=generate_unique_hash(match.new_transaction.hash))
                for match in check.matches
            )

        for item in to_insert:
            try:
                values = fields(item.record)
                new_id = self.db.insert_transaction_ignore_duplicate(owner_id, item.hash, **values)
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.warning("Failed to insert row dated %s: %s", item.record.date, e)
                result.errors.append(f"{item.record.date.isoformat()}: {e}")
                continue

            if new_id is None:
                # Inserted by a concurrent import after the duplicate check
                result.duplicates += 1
                continue
            result.imported += 1
            result.transaction_ids.append(new_id)

        return result
