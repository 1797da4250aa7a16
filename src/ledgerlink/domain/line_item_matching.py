"""Invoice line item to transaction auto-matching.

A batch walks the requested invoices in the given order and their line items
in creation order. Each unmatched line item is scored against the eligible
transactions in its date window. The best unclaimed transaction is linked
when it reaches the auto-approve threshold; otherwise transactions in the
candidate band are returned as suggestions.

A transaction satisfies at most one line item: transactions already linked
to another line item are excluded, as are transactions claimed earlier in the
same batch. The claimed set lives only for the duration of one call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Optional, Any, Iterable, Mapping, Sequence

from sqlalchemy.exc import SQLAlchemyError

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ledgerlink.database.base import Database
from ledgerlink.domain.entities import (
    MATCH_AUTO_APPROVED,
    MATCH_UNMATCHED,
    METHOD_AUTO_APPROVED,
    Invoice,
    InvoiceLineItem,
    VendorAlias,
)
from ledgerlink.domain.errors import cross_owner_link, invoice_not_found
from ledgerlink.domain.scoring import (
    DEFAULT_WEIGHTS,
    ELIGIBLE_TRANSACTION_TYPES,
    MatchScore,
    ScoringContext,
    ScoringWeights,
    score_match,
)
from ledgerlink.domain.settings import MatchingSettings

logger = logging.getLogger(__name__)

STATUS_AUTO_MATCHED = "auto_matched"
STATUS_CANDIDATE = "candidate"
STATUS_NO_MATCH = "no_match"
STATUS_ALREADY_MATCHED = "already_matched"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


@dataclass
class LineItemMatchResult:
    """Outcome for one line item."""

    line_item_id: int
    status: str
    best_match: Optional[MatchScore] = None
    candidates: list[MatchScore] = field(default_factory=list)
    match_method: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "lineItemId": self.line_item_id,
            "status": self.status,
            "bestMatch": self.best_match.to_dict() if self.best_match is not None else None,
            "candidates": [candidate.to_dict() for candidate in self.candidates],
            "matchMethod": self.match_method,
            "error": self.error,
        }


@dataclass
class InvoiceMatchResult:
    """Outcome for one invoice."""

    invoice_id: int
    line_items_matched: int = 0
    line_items_skipped: int = 0
    error: Optional[str] = None
    line_items: list[LineItemMatchResult] = field(default_factory=list)

    def to_dict(self, include_line_items: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "invoiceId": self.invoice_id,
            "lineItemsMatched": self.line_items_matched,
            "lineItemsSkipped": self.line_items_skipped,
        }
        if self.error is not None:
            data["error"] = self.error
        if include_line_items:
            data["lineItems"] = [item.to_dict() for item in self.line_items]
        return data


@dataclass
class BatchMatchResult:
    """Outcome of one auto-match batch."""

    total_invoices: int = 0
    processed_invoices: int = 0
    total_line_items: int = 0
    matched: int = 0
    skipped: int = 0
    failed: int = 0
    results: list[InvoiceMatchResult] = field(default_factory=list)

    def to_dict(self, include_line_items: bool = False) -> dict[str, Any]:
        return {
            "totalInvoices": self.total_invoices,
            "processedInvoices": self.processed_invoices,
            "totalLineItems": self.total_line_items,
            "matched": self.matched,
            "skipped": self.skipped,
            "failed": self.failed,
            "results": [result.to_dict(include_line_items) for result in self.results],
        }


class LineItemMatchingService:
    """Scores and links invoice line items to ledger transactions."""

    def __init__(self, db: Database, weights: ScoringWeights = DEFAULT_WEIGHTS):
        """Initialize line item matching service.

        Args:
            db: Database instance
            weights: Score component weights
        """
        self.db = db
        self.weights = weights

    def get_match_candidates(
        self,
        owner_id: int,
        line_item: InvoiceLineItem,
        invoice: Optional[Invoice],
        settings: MatchingSettings,
        vendor_aliases: Optional[Sequence[VendorAlias]] = None,
        exchange_rates: Optional[Mapping[str, Decimal | float]] = None,
        exclude: Iterable[int] = (),
    ) -> list[MatchScore]:
        """Score the owner's eligible transactions against a line item.

        Args:
            owner_id: Owner scope
            line_item: Line item to match
            invoice: Parent invoice, supplies vendor name and fallback date
            settings: Candidate threshold, date window and candidate limit
            vendor_aliases: Owner's aliases, loaded when omitted
            exchange_rates: Currency code -> base units per foreign unit
            exclude: Transaction IDs that may not be offered

        Returns:
            Scores at or above the candidate threshold, best first. Equal
            scores keep (date, id) order.
        """
        if vendor_aliases is None:
            vendor_aliases = self.db.list_vendor_aliases(owner_id)

        context = ScoringContext(
            line_item=line_item,
            invoice=invoice,
            vendor_aliases=vendor_aliases,
            exchange_rates=exchange_rates or {},
            date_range_days=settings.date_range_days,
        )
        target = context.line_date
        if target is None:
            return []

        window = timedelta(days=settings.date_range_days)
        transactions = self.db.list_transactions(
            owner_id,
            transaction_types=ELIGIBLE_TRANSACTION_TYPES,
            start_date=target - window,
            end_date=target + window,
        )

        excluded = set(exclude)
        scores = []
        for transaction in transactions:
            if transaction.id in excluded:
                continue
            score = score_match(transaction, context, self.weights)
            if score.is_disqualified or score.total < settings.candidate_threshold:
                continue
            scores.append(score)

        # sorted() is stable, so ties stay in enumeration order
        scores = sorted(scores, key=lambda s: s.total, reverse=True)
        return scores[: settings.max_candidates]

    def auto_match_invoices(
        self,
        owner_id: int,
        invoice_ids: Iterable[int],
        settings: MatchingSettings,
        force_rematch: bool = False,
        exchange_rates: Optional[Mapping[str, Decimal | float]] = None,
    ) -> BatchMatchResult:
        """Auto-match the line items of a batch of invoices.

        Safe to re-run: linked line items are skipped unless force_rematch
        is set, and linked transactions are never offered twice.

        Args:
            owner_id: Owner scope
            invoice_ids: Invoices to process, in processing order
            settings: Thresholds, date window and candidate limit
            force_rematch: Re-score line items that are already linked
            exchange_rates: Currency code -> base units per foreign unit

        Returns:
            BatchMatchResult with per-invoice counts; storage errors are
            recorded per invoice or line item, never raised
        """
        invoice_ids = list(invoice_ids)
        result = BatchMatchResult(total_invoices=len(invoice_ids))

        try:
            vendor_aliases = self.db.list_vendor_aliases(owner_id)
            links = self.db.get_line_item_links(owner_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to load matching state for owner %s: %s", owner_id, e)
            result.failed = len(invoice_ids)
            return result

        claimed: set[int] = set()

        for invoice_id in invoice_ids:
            invoice_result = InvoiceMatchResult(invoice_id=invoice_id)
            result.results.append(invoice_result)

            try:
                invoice = self.db.get_invoice(invoice_id)
                owned = invoice is not None and invoice.owner_id == owner_id
                line_items = self.db.list_line_items(invoice_id) if owned else []
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.warning("Failed to load invoice %s: %s", invoice_id, e)
                invoice_result.error = str(e)
                result.failed += 1
                continue

            if invoice is None:
                invoice_result.error = invoice_not_found(invoice_id)
                result.failed += 1
                continue
            if invoice.owner_id != owner_id:
                invoice_result.error = cross_owner_link("Invoice", invoice_id, owner_id)
                result.failed += 1
                continue

            for line_item in line_items:
                result.total_line_items += 1
                item_result = self._match_line_item(
                    owner_id, line_item, invoice, settings, vendor_aliases, exchange_rates, links, claimed, force_rematch
                )
                invoice_result.line_items.append(item_result)

                if item_result.status == STATUS_AUTO_MATCHED:
                    invoice_result.line_items_matched += 1
                    result.matched += 1
                elif item_result.status == STATUS_FAILED:
                    result.failed += 1
                else:
                    invoice_result.line_items_skipped += 1
                    result.skipped += 1

            result.processed_invoices += 1

        logger.info(
            "Owner %s: auto-matched %d of %d line items across %d invoices",
            owner_id,
            result.matched,
            result.total_line_items,
            result.processed_invoices,
        )
        return result

    def _match_line_item(
        self,
        owner_id: int,
        line_item: InvoiceLineItem,
        invoice: Invoice,
        settings: MatchingSettings,
        vendor_aliases: Sequence[VendorAlias],
        exchange_rates: Optional[Mapping[str, Decimal | float]],
        links: dict[int, int],
        claimed: set[int],
        force_rematch: bool,
    ) -> LineItemMatchResult:
        if line_item.transaction_id is not None and not force_rematch:
            return LineItemMatchResult(line_item.id, STATUS_ALREADY_MATCHED, match_method=line_item.match_method)
        if line_item.amount_agorot is None:
            return LineItemMatchResult(line_item.id, STATUS_SKIPPED, error="Line item has no amount")
        if line_item.transaction_date is None and invoice.invoice_date is None:
            return LineItemMatchResult(line_item.id, STATUS_SKIPPED, error="Line item has no date")

        exclude = {tx_id for tx_id, item_id in links.items() if item_id != line_item.id} | claimed

        try:
            candidates = self.get_match_candidates(
                owner_id, line_item, invoice, settings, vendor_aliases, exchange_rates, exclude
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("Failed to score line item %s: %s", line_item.id, e)
            return LineItemMatchResult(line_item.id, STATUS_FAILED, error=str(e))

        if not candidates:
            return LineItemMatchResult(line_item.id, STATUS_NO_MATCH)

        best = candidates[0]
        if best.total < settings.auto_approve_threshold:
            return LineItemMatchResult(line_item.id, STATUS_CANDIDATE, best_match=best, candidates=candidates)

        previous = line_item.transaction_id
        try:
            self.db.link_line_item(line_item.id, best.transaction_id, METHOD_AUTO_APPROVED, best.total)
            self.db.update_transaction_match(best.transaction_id, MATCH_AUTO_APPROVED, best.total)
            if previous is not None and previous != best.transaction_id:
                self.db.update_transaction_match(previous, MATCH_UNMATCHED, None)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("Failed to link line item %s to transaction %s: %s", line_item.id, best.transaction_id, e)
            return LineItemMatchResult(line_item.id, STATUS_FAILED, best_match=best, candidates=candidates, error=str(e))

        if previous is not None:
            links.pop(previous, None)
        links[best.transaction_id] = line_item.id
        claimed.add(best.transaction_id)
        logger.debug("Linked line item %s to transaction %s (score %d)", line_item.id, best.transaction_id, best.total)

        return LineItemMatchResult(
            line_item.id,
            STATUS_AUTO_MATCHED,
            best_match=best,
            candidates=candidates,
            match_method=METHOD_AUTO_APPROVED,
        )
