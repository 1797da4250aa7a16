"""Domain model entities for ledgerlink.

These are pure data classes representing reconciliation concepts,
independent of database schema. All money values are integer minor units
(agorot, cents); no floating-point amount is stored on an entity.
"""

from dataclasses import dataclass
from datetime import datetime, date
from typing import Optional


# Transaction types
BANK_REGULAR = "bank_regular"
BANK_CC_CHARGE = "bank_cc_charge"
CC_PURCHASE = "cc_purchase"
TRANSACTION_TYPES = (BANK_REGULAR, BANK_CC_CHARGE, CC_PURCHASE)

# Transaction match statuses
MATCH_UNMATCHED = "unmatched"
MATCH_MANUAL = "manual"
MATCH_RULE_AMOUNT_DATE = "rule_amount_date"
MATCH_AUTO_APPROVED = "auto_approved"
MATCH_STATUSES = (MATCH_UNMATCHED, MATCH_MANUAL, MATCH_RULE_AMOUNT_DATE, MATCH_AUTO_APPROVED)

# Line item match methods
METHOD_MANUAL = "manual"
METHOD_RULE_REFERENCE = "rule_reference"
METHOD_RULE_AMOUNT_DATE = "rule_amount_date"
METHOD_RULE_FUZZY = "rule_fuzzy"
METHOD_AUTO_APPROVED = "auto_approved"
MATCH_METHODS = (
    METHOD_MANUAL,
    METHOD_RULE_REFERENCE,
    METHOD_RULE_AMOUNT_DATE,
    METHOD_RULE_FUZZY,
    METHOD_AUTO_APPROVED,
)

# Vendor alias match types
ALIAS_EXACT = "exact"
ALIAS_STARTS_WITH = "starts_with"
ALIAS_ENDS_WITH = "ends_with"
ALIAS_CONTAINS = "contains"
ALIAS_MATCH_TYPES = (ALIAS_EXACT, ALIAS_STARTS_WITH, ALIAS_ENDS_WITH, ALIAS_CONTAINS)

# CC-bank aggregate review statuses
REVIEW_PENDING = "pending"
REVIEW_APPROVED = "approved"
REVIEW_REJECTED = "rejected"
REVIEW_STATUSES = (REVIEW_PENDING, REVIEW_APPROVED, REVIEW_REJECTED)

OWNER_KINDS = ("user", "team")

BASE_CURRENCY = "ILS"


@dataclass(frozen=True)
class Owner:
    """Owner scope (a user or a team). Records never cross owners."""

    id: int
    name: str
    kind: str
    created_at: datetime


@dataclass(frozen=True)
class CreditCard:
    """Credit card known for an owner, identified by its last four digits."""

    id: int
    owner_id: int
    card_last_four: str
    card_name: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class Transaction:
    """Unified ledger row for bank rows, bank card charges and card purchases."""

    id: int
    owner_id: int
    date: date
    description: str
    amount_agorot: int
    transaction_type: str
    hash: str
    match_status: str = MATCH_UNMATCHED
    value_date: Optional[date] = None
    reference: Optional[str] = None
    balance_agorot: Optional[int] = None
    foreign_amount_cents: Optional[int] = None
    foreign_currency: Optional[str] = None
    credit_card_id: Optional[int] = None
    parent_bank_charge_id: Optional[int] = None
    match_confidence: Optional[int] = None
    imported_at: Optional[datetime] = None


@dataclass(frozen=True)
class FileRecord:
    """Uploaded document file."""

    id: int
    owner_id: int
    original_name: str
    size_bytes: int
    file_hash: str
    created_at: datetime


@dataclass(frozen=True)
class Invoice:
    """Invoice or receipt extracted from an uploaded file."""

    id: int
    owner_id: int
    file_id: Optional[int]
    vendor_name: Optional[str]
    invoice_number: Optional[str]
    invoice_date: Optional[date]
    total_amount_agorot: Optional[int]
    currency: str
    created_at: datetime


@dataclass(frozen=True)
class InvoiceLineItem:
    """Line item belonging to an invoice.

    Once ``transaction_id`` is set the line item is consumed and excluded
    from auto-matching unless a forced rematch is requested.
    """

    id: int
    invoice_id: int
    description: Optional[str]
    reference_id: Optional[str]
    transaction_date: Optional[date]
    amount_agorot: Optional[int]
    currency: str
    vat_rate: Optional[float] = None
    vat_amount_agorot: Optional[int] = None
    transaction_id: Optional[int] = None
    match_method: Optional[str] = None
    match_confidence: Optional[int] = None
    matched_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class VendorAlias:
    """Owner-scoped rule mapping a description pattern to a canonical vendor."""

    id: int
    owner_id: int
    alias_pattern: str
    match_type: str
    canonical_name: str
    priority: int = 0
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class CCBankMatchResult:
    """Aggregate of the card purchases currently settled by one bank charge."""

    id: int
    owner_id: int
    bank_transaction_id: int
    card_last_four: str
    charge_date: date
    total_cc_amount_agorot: int
    bank_amount_agorot: int
    discrepancy_agorot: int
    cc_transaction_count: int
    match_confidence: int
    status: str = REVIEW_PENDING
    created_at: Optional[datetime] = None


# Records produced by external collaborators (statement parsers, extraction).


@dataclass(frozen=True)
class ParsedTransaction:
    """Bank statement row as produced by a statement parser."""

    date: date
    description: str
    amount_agorot: int
    value_date: Optional[date] = None
    reference: Optional[str] = None
    balance_agorot: Optional[int] = None


@dataclass(frozen=True)
class ParsedCreditCardTransaction:
    """Credit card statement row as produced by a statement parser."""

    date: date
    merchant_name: str
    amount_agorot: int
    card_last_four: str
    billing_date: Optional[date] = None
    foreign_amount: Optional[int] = None
    foreign_currency: Optional[str] = None
    transaction_type: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class ExtractedLineItem:
    """Line item from document extraction, already normalized to minor units."""

    date: Optional[date]
    description: Optional[str]
    reference_id: Optional[str]
    amount: Optional[int]
    currency: Optional[str] = BASE_CURRENCY
    vat_rate: Optional[float] = None
    vat_amount: Optional[int] = None
