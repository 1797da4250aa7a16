"""Line item to transaction match scoring.

``score_match`` is a pure function: it reads a transaction and a scoring
context and returns a score between 0 and 100. The raw score is the sum of
independently capped components:

- reference (30): line item reference equals the transaction reference or a
  token of its description
- amount (30): full at equality, linear decay to 0 at ``amount_ceiling_percent``
- date (20): full within ``date_grace_days``, linear decay to 0 at the edge of
  the date window
- vendor (15): alias resolution, then merchant normalizer, then shared words
- currency (5): line item and transaction in the same currency

The total is the raw score as a percentage of the points available. Without
reference credit the reference weight is left out of the available points, so
a line item with no reference can still reach 100.

A disqualified transaction scores 0 regardless of its components.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Any, Mapping, Sequence

from ledgerlink.domain.entities import (
    BANK_REGULAR,
    BASE_CURRENCY,
    CC_PURCHASE,
    Invoice,
    InvoiceLineItem,
    Transaction,
    VendorAlias,
)
from ledgerlink.domain.settings import DEFAULT_DATE_RANGE_DAYS
from ledgerlink.utils.merchant import is_same_merchant
from ledgerlink.utils.vendor_resolver import find_matching_aliases, matches_alias_pattern

logger = logging.getLogger(__name__)

ELIGIBLE_TRANSACTION_TYPES = (BANK_REGULAR, CC_PURCHASE)

DEFAULT_AMOUNT_CEILING_PERCENT = 10.0

# Fractions of the component weight for weaker evidence
REFERENCE_IN_DESCRIPTION_FACTOR = 0.8
REFERENCE_SUFFIX_FACTOR = 0.5
VENDOR_MERCHANT_FACTOR = 0.8
VENDOR_WORD_FACTOR = 0.6
DATE_UNKNOWN_FACTOR = 0.5

MIN_VENDOR_WORD_LENGTH = 3
REFERENCE_SUFFIX_LENGTH = 6

EXCLUDED_VENDOR_WORDS = frozenset(
    {
        # Company suffixes
        "inc", "ltd", "llc", "corp", "corporation", "company", "co",
        "gmbh", "ag", "sa", "pty", "usa", "us", "limited", "plc", "lp", "llp",
        "בעמ", "בע\"מ",
        # Document and payment noise
        "מעמ", "עוסק", "מורשה", "חשבונית", "קבלה", "תשלום",
        "payment", "invoice", "receipt", "transaction", "purchase",
        "service", "services", "product", "products", "order",
        "the", "and", "for", "from",
    }
)

_REFERENCE_TOKEN = re.compile(r"[0-9A-Za-z][0-9A-Za-z\-_/.]*[0-9A-Za-z]|[0-9A-Za-z]")
_WORD_SPLIT = re.compile(r"\W+")
_ONE = Decimal(1)


@dataclass(frozen=True)
class ScoringWeights:
    """Maximum points per component. Tunable; defaults sum to 100."""

    reference: int = 30
    amount: int = 30
    date: int = 20
    vendor: int = 15
    currency: int = 5
    date_grace_days: int = 1

    @property
    def max_points(self) -> int:
        return self.reference + self.amount + self.date + self.vendor + self.currency


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass(frozen=True)
class ScoringContext:
    """Everything the scorer needs besides the transaction.

    Attributes:
        line_item: The line item being matched
        invoice: Parent invoice (vendor name, fallback date)
        vendor_aliases: Owner's vendor aliases
        exchange_rates: Currency code -> base-currency units per foreign unit
        date_range_days: Half-width of the date window around the line item date
        amount_ceiling_percent: Amount difference at which amount credit reaches 0
    """

    line_item: InvoiceLineItem
    invoice: Optional[Invoice] = None
    vendor_aliases: Sequence[VendorAlias] = ()
    exchange_rates: Mapping[str, Decimal | float] = field(default_factory=dict)
    date_range_days: int = DEFAULT_DATE_RANGE_DAYS
    amount_ceiling_percent: float = DEFAULT_AMOUNT_CEILING_PERCENT

    @property
    def line_date(self) -> Optional[date]:
        if self.line_item.transaction_date is not None:
            return self.line_item.transaction_date
        if self.invoice is not None:
            return self.invoice.invoice_date
        return None

    @property
    def line_currency(self) -> str:
        return (self.line_item.currency or BASE_CURRENCY).upper()

    @property
    def vendor_name(self) -> str:
        if self.invoice is not None and self.invoice.vendor_name:
            return self.invoice.vendor_name
        return self.line_item.description or ""


@dataclass(frozen=True)
class ScoreBreakdown:
    """Points per component."""

    reference: int = 0
    amount: int = 0
    date: int = 0
    vendor: int = 0
    currency: int = 0

    @property
    def total(self) -> int:
        return self.reference + self.amount + self.date + self.vendor + self.currency


@dataclass(frozen=True)
class MatchScore:
    """Score of one transaction against one line item."""

    transaction_id: int
    total: int
    breakdown: ScoreBreakdown
    reasons: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    is_disqualified: bool = False
    disqualify_reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "transactionId": self.transaction_id,
            "total": self.total,
            "breakdown": {
                "reference": self.breakdown.reference,
                "amount": self.breakdown.amount,
                "date": self.breakdown.date,
                "vendor": self.breakdown.vendor,
                "currency": self.breakdown.currency,
            },
            "matchReasons": list(self.reasons),
            "warnings": list(self.warnings),
            "isDisqualified": self.is_disqualified,
            "disqualifyReason": self.disqualify_reason,
        }


def _points(weight: int, fraction: float) -> int:
    fraction = min(1.0, max(0.0, fraction))
    return int(Decimal(str(weight * fraction)).quantize(_ONE, rounding=ROUND_HALF_UP))


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def _disqualified(transaction: Transaction, reason: str) -> MatchScore:
    return MatchScore(
        transaction_id=transaction.id,
        total=0,
        breakdown=ScoreBreakdown(),
        is_disqualified=True,
        disqualify_reason=reason,
    )


def transaction_currency(transaction: Transaction) -> str:
    """Currency the transaction was made in (base currency unless a foreign amount exists)."""
    if transaction.foreign_currency and transaction.foreign_amount_cents:
        return transaction.foreign_currency.upper()
    return BASE_CURRENCY


def date_distance(transaction: Transaction, target: date) -> int:
    """Days from target to the closer of the transaction date and value date."""
    distance = abs((transaction.date - target).days)
    if transaction.value_date is not None:
        distance = min(distance, abs((transaction.value_date - target).days))
    return distance


def extract_reference_tokens(description: str) -> set[str]:
    """Uppercased alphanumeric tokens of a description (e.g. ``INV-001``)."""
    if not description:
        return set()
    return {token.upper() for token in _REFERENCE_TOKEN.findall(description)}


def tokenize_vendor_words(text: str) -> set[str]:
    """Significant lowercase words of a vendor name or description."""
    if not text:
        return set()
    words = _WORD_SPLIT.split(text.lower())
    return {word for word in words if len(word) >= MIN_VENDOR_WORD_LENGTH and word not in EXCLUDED_VENDOR_WORDS}


def score_reference(transaction: Transaction, context: ScoringContext, weights: ScoringWeights) -> tuple[int, Optional[str]]:
    """Reference component and its reason."""
    reference = (context.line_item.reference_id or "").strip()
    if not reference:
        return 0, None

    wanted = reference.upper()
    if transaction.reference and transaction.reference.strip().upper() == wanted:
        return weights.reference, "Exact reference match"
    if wanted in extract_reference_tokens(transaction.description):
        return weights.reference, "Reference found in description"

    description = (transaction.description or "").upper()
    if wanted in description:
        return _points(weights.reference, REFERENCE_IN_DESCRIPTION_FACTOR), "Reference contained in description"
    if len(wanted) > REFERENCE_SUFFIX_LENGTH and wanted[-REFERENCE_SUFFIX_LENGTH:] in description:
        return _points(weights.reference, REFERENCE_SUFFIX_FACTOR), "Partial reference match"
    return 0, None


def _convert_to_base(amount: int, currency: str, rates: Mapping[str, Decimal | float]) -> Optional[int]:
    if currency == BASE_CURRENCY:
        return amount
    rate = rates.get(currency)
    if rate is None:
        return None
    converted = Decimal(amount) * Decimal(str(rate))
    return int(converted.quantize(_ONE, rounding=ROUND_HALF_UP))


def comparable_amounts(transaction: Transaction, context: ScoringContext) -> Optional[tuple[int, int, bool]]:
    """Absolute (line amount, transaction amount) in one currency.

    Returns:
        (line, transaction, converted) or None when no common currency exists
    """
    line_amount = abs(context.line_item.amount_agorot or 0)
    line_currency = context.line_currency

    if line_currency == BASE_CURRENCY:
        return line_amount, abs(transaction.amount_agorot), False
    if transaction_currency(transaction) == line_currency:
        return line_amount, abs(transaction.foreign_amount_cents), False

    converted = _convert_to_base(line_amount, line_currency, context.exchange_rates)
    if converted is None:
        return None
    return converted, abs(transaction.amount_agorot), True


def score_amount(
    transaction: Transaction, context: ScoringContext, weights: ScoringWeights
) -> tuple[int, Optional[str], Optional[str]]:
    """Amount component, reason and warning.

    Credit decays linearly with the percentage difference relative to the
    line item amount and reaches 0 at ``amount_ceiling_percent``.
    """
    if not context.line_item.amount_agorot:
        return 0, None, "Line item amount is missing or zero"

    amounts = comparable_amounts(transaction, context)
    if amounts is None:
        return 0, None, f"Exchange rate unavailable for {context.line_currency}"

    line_amount, tx_amount, converted = amounts
    if tx_amount == 0:
        return 0, None, "Transaction amount is zero"

    note = f" (via {context.line_currency}->{BASE_CURRENCY} conversion)" if converted else ""
    if line_amount == tx_amount:
        return weights.amount, f"Exact amount match{note}", None

    percent = abs(line_amount - tx_amount) * 100 / line_amount
    ceiling = context.amount_ceiling_percent
    fraction = 1 - percent / ceiling if ceiling > 0 else 0.0
    points = _points(weights.amount, fraction)
    if points > 0:
        return points, f"Amount within {percent:.1f}%{note}", None
    return 0, None, f"Amount differs by {percent:.1f}%{note}"


def _days_apart(days: int) -> str:
    return f"{days} day apart" if days == 1 else f"{days} days apart"


def score_date(
    transaction: Transaction, context: ScoringContext, weights: ScoringWeights
) -> tuple[int, Optional[str]]:
    """Date component and its reason.

    Full credit within the grace period, then linear decay to 0 at the
    window edge. Without any line item date, half credit is given.
    """
    target = context.line_date
    if target is None:
        return _points(weights.date, DATE_UNKNOWN_FACTOR), "No date available on line item"

    days = date_distance(transaction, target)
    grace = weights.date_grace_days
    window = context.date_range_days

    if days <= grace:
        return weights.date, "Same day" if days == 0 else _days_apart(days)
    if window <= grace:
        return 0, None

    points = _points(weights.date, 1 - (days - grace) / (window - grace))
    if points == 0:
        return 0, None
    return points, _days_apart(days)


def _alias_matches_vendor(alias: VendorAlias, vendor_name: str) -> bool:
    canonical = alias.canonical_name.lower().strip()
    vendor = vendor_name.lower().strip()
    if not canonical or not vendor:
        return False
    return canonical in vendor or vendor in canonical


def score_vendor(
    transaction: Transaction, context: ScoringContext, weights: ScoringWeights
) -> tuple[int, Optional[str]]:
    """Vendor component and its reason."""
    vendor_name = context.vendor_name
    description = transaction.description or ""
    if not vendor_name or not description:
        return 0, None

    for alias in find_matching_aliases(description, context.vendor_aliases):
        if _alias_matches_vendor(alias, vendor_name):
            return weights.vendor, f"Vendor match (alias '{alias.canonical_name}')"

    if is_same_merchant(vendor_name, description):
        return _points(weights.vendor, VENDOR_MERCHANT_FACTOR), "Vendor match (merchant name)"

    vendor_words = tokenize_vendor_words(vendor_name) | tokenize_vendor_words(context.line_item.description or "")
    tx_words = tokenize_vendor_words(description)
    for alias in context.vendor_aliases:
        if matches_alias_pattern(description, alias):
            tx_words |= tokenize_vendor_words(alias.canonical_name)

    if vendor_words & tx_words:
        return _points(weights.vendor, VENDOR_WORD_FACTOR), "Vendor match (shared word)"
    return 0, None


def score_currency(transaction: Transaction, context: ScoringContext, weights: ScoringWeights) -> int:
    """Currency component."""
    return weights.currency if transaction_currency(transaction) == context.line_currency else 0


def disqualify_reason(transaction: Transaction, context: ScoringContext) -> Optional[str]:
    """Reason the transaction can never match the line item, or None."""
    if transaction.transaction_type not in ELIGIBLE_TRANSACTION_TYPES:
        return f"Transaction type '{transaction.transaction_type}' not eligible for matching"

    line_currency = context.line_currency
    tx_foreign = (transaction.foreign_currency or "").upper()
    if (
        line_currency != BASE_CURRENCY
        and tx_foreign
        and tx_foreign != BASE_CURRENCY
        and tx_foreign != line_currency
    ):
        return f"Currency mismatch: line item {line_currency}, transaction {tx_foreign}"

    target = context.line_date
    if target is not None:
        days = date_distance(transaction, target)
        if days > context.date_range_days:
            return f"Date {days} days from line item, outside {context.date_range_days}-day window"

    line_sign = _sign(context.line_item.amount_agorot or 0)
    tx_sign = _sign(transaction.amount_agorot)
    # A positive line item (expense) is paid by a negative ledger amount
    if line_sign and tx_sign and tx_sign != -line_sign:
        return "Amount sign mismatch between line item and transaction"

    return None


def normalized_total(breakdown: ScoreBreakdown, weights: ScoringWeights = DEFAULT_WEIGHTS) -> int:
    """Raw points as a 0..100 share of the points available.

    Reference points are only available when some reference credit was
    earned. Otherwise the reference weight is dropped from the maximum.
    """
    available = weights.max_points if breakdown.reference > 0 else weights.max_points - weights.reference
    if available <= 0:
        return 0
    share = Decimal(breakdown.total * 100) / Decimal(available)
    return max(0, min(100, int(share.quantize(_ONE, rounding=ROUND_HALF_UP))))


def score_match(
    transaction: Transaction,
    context: ScoringContext,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> MatchScore:
    """Score a transaction as a match for the context's line item.

    Args:
        transaction: Candidate transaction
        context: Line item, invoice, aliases, rates and window
        weights: Component weights

    Returns:
        MatchScore with total in 0..100
    """
    reason = disqualify_reason(transaction, context)
    if reason is not None:
        return _disqualified(transaction, reason)

    reasons: list[str] = []
    warnings: list[str] = []

    reference_points, reference_reason = score_reference(transaction, context, weights)
    amount_points, amount_reason, amount_warning = score_amount(transaction, context, weights)
    date_points, date_reason = score_date(transaction, context, weights)
    vendor_points, vendor_reason = score_vendor(transaction, context, weights)
    currency_points = score_currency(transaction, context, weights)

    for text in (reference_reason, amount_reason, date_reason, vendor_reason):
        if text:
            reasons.append(text)
    if currency_points:
        reasons.append("Currency match")
    if amount_warning:
        warnings.append(amount_warning)

    breakdown = ScoreBreakdown(
        reference=reference_points,
        amount=amount_points,
        date=date_points,
        vendor=vendor_points,
        currency=currency_points,
    )
    return MatchScore(
        transaction_id=transaction.id,
        total=normalized_total(breakdown, weights),
        breakdown=breakdown,
        reasons=reasons,
        warnings=warnings,
    )
