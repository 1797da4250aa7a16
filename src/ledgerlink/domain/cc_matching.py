"""Credit card purchase to bank charge matching.

Card purchases are settled by a single bank charge whose description names the
card (e.g. "VISA 4176 CHARGE"). A run groups unlinked purchases by card and
billing date, finds the bank charge that settles each group and links the
members to it. The aggregate row of a bank charge is always recomputed from
the purchases currently linked to it and is deleted when none remain.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Any, Iterable

from sqlalchemy.exc import SQLAlchemyError

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ledgerlink.database.base import Database
from ledgerlink.domain.entities import (
    BANK_CC_CHARGE,
    CC_PURCHASE,
    MATCH_MANUAL,
    MATCH_RULE_AMOUNT_DATE,
    REVIEW_STATUSES,
    REVIEW_PENDING,
    REVIEW_APPROVED,
    REVIEW_REJECTED,
    CCBankMatchResult,
    Transaction,
)
from ledgerlink.domain.errors import (
    NotFoundError,
    ValidationError,
    cross_owner_link,
    match_result_not_found,
    transaction_not_found,
)
from ledgerlink.domain.settings import MatchingSettings
from ledgerlink.utils.card_detector import detect_credit_card_charge

logger = logging.getLogger(__name__)

MANUAL_CONFIDENCE = 100
DATE_WEIGHT = 0.6
AMOUNT_WEIGHT = 0.4


@dataclass
class CCMatchingResult:
    """Outcome of one matching run."""

    matched_groups: int = 0
    matched_cc_transactions: int = 0
    total_discrepancy_agorot: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "matchedGroups": self.matched_groups,
            "matchedCCTransactions": self.matched_cc_transactions,
            "totalDiscrepancyAgorot": self.total_discrepancy_agorot,
            "errors": list(self.errors),
        }


@dataclass(frozen=True)
class CCMatchSummary:
    """Owner-level view of settlement matching."""

    total_matches: int
    pending: int
    approved: int
    rejected: int
    total_discrepancy_agorot: int
    linked_purchases: int
    unlinked_purchases: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalMatches": self.total_matches,
            "pending": self.pending,
            "approved": self.approved,
            "rejected": self.rejected,
            "totalDiscrepancyAgorot": self.total_discrepancy_agorot,
            "linkedPurchases": self.linked_purchases,
            "unlinkedPurchases": self.unlinked_purchases,
        }


@dataclass(frozen=True)
class PurchaseGroup:
    """Unlinked purchases of one card sharing a billing date."""

    card_last_four: str
    charge_date: date
    transactions: list[Transaction]

    @property
    def total_amount_agorot(self) -> int:
        return sum(tx.amount_agorot for tx in self.transactions)


@dataclass(frozen=True)
class BankChargeMatch:
    """Best bank charge found for a purchase group."""

    bank_transaction: Transaction
    confidence: int
    days_diff: int


def settlement_date(transaction: Transaction) -> date:
    """Billing date of a card purchase, falling back to the purchase date."""
    return transaction.value_date or transaction.date


def calculate_confidence(
    days_diff: int, date_tolerance_days: int, discrepancy_percent: float, amount_tolerance_percent: float
) -> int:
    """Confidence of a settlement match.

    Each factor loses half its credit at the edge of its tolerance; date
    proximity weighs 60% and amount agreement 40%.
    """
    if date_tolerance_days > 0:
        date_score = max(0.0, 100 - (days_diff / date_tolerance_days) * 50)
    else:
        date_score = 100.0 if days_diff == 0 else 0.0

    if amount_tolerance_percent > 0:
        amount_score = max(0.0, 100 - (discrepancy_percent / amount_tolerance_percent) * 50)
    else:
        amount_score = 100.0 if discrepancy_percent == 0 else 0.0

    return round(date_score * DATE_WEIGHT + amount_score * AMOUNT_WEIGHT)


def group_purchases(purchases: Iterable[Transaction], card_numbers: dict[int, str]) -> list[PurchaseGroup]:
    """Group purchases by (card last four, billing date), in first-seen order.

    Purchases without a known card are left out.
    """
    groups: dict[tuple[str, date], list[Transaction]] = {}
    for purchase in purchases:
        last_four = card_numbers.get(purchase.credit_card_id) if purchase.credit_card_id is not None else None
        if last_four is None:
            logger.debug("Purchase %s has no card, skipping", purchase.id)
            continue
        groups.setdefault((last_four, settlement_date(purchase)), []).append(purchase)

    return [
        PurchaseGroup(card_last_four=last_four, charge_date=charge_date, transactions=members)
        for (last_four, charge_date), members in groups.items()
    ]


def find_best_bank_match(
    group: PurchaseGroup,
    bank_charges: Iterable[Transaction],
    settled: dict[int, int],
    settings: MatchingSettings,
) -> Optional[BankChargeMatch]:
    """Pick the bank charge that settles a purchase group.

    A charge qualifies when its description names the group's card, its date
    is within ``date_tolerance_days`` of the billing date and the group total
    is within ``amount_tolerance_percent`` of the charge amount not yet
    settled by other purchases. The highest confidence wins; ties keep the
    first charge in (date, id) order.

    Args:
        group: Purchases to settle
        bank_charges: Owner's bank card charges
        settled: Bank charge ID -> amount already settled by linked purchases
        settings: Matching tolerances
    """
    best: Optional[BankChargeMatch] = None

    for bank in bank_charges:
        if detect_credit_card_charge(bank.description) != group.card_last_four:
            continue

        days_diff = abs((bank.date - group.charge_date).days)
        if days_diff > settings.date_tolerance_days:
            continue

        bank_amount = abs(bank.amount_agorot)
        if bank_amount == 0:
            continue
        remaining = bank.amount_agorot - settled.get(bank.id, 0)
        discrepancy_percent = abs(remaining - group.total_amount_agorot) * 100 / bank_amount
        if discrepancy_percent > settings.amount_tolerance_percent:
            continue

        confidence = calculate_confidence(
            days_diff, settings.date_tolerance_days, discrepancy_percent, settings.amount_tolerance_percent
        )
        if best is None or confidence > best.confidence:
            best = BankChargeMatch(bank_transaction=bank, confidence=confidence, days_diff=days_diff)

    return best


class CCBankMatchingService:
    """Links card purchases to the bank charges that settle them."""

    def __init__(self, db: Database):
        """Initialize CC-bank matching service.

        Args:
            db: Database instance
        """
        self.db = db

    def run_matching(self, owner_id: int, settings: MatchingSettings) -> CCMatchingResult:
        """Match every unlinked card purchase of an owner.

        Safe to re-run: already linked purchases are not touched and
        aggregates are recomputed from current links.

        Args:
            owner_id: Owner scope
            settings: Date and amount tolerances

        Returns:
            CCMatchingResult with per-link errors collected, never raised
        """
        result = CCMatchingResult()

        try:
            purchases = self.db.list_unlinked_purchases(owner_id)
            card_numbers = {card.id: card.card_last_four for card in self.db.list_credit_cards(owner_id)}
            bank_charges = self.db.list_transactions(owner_id, transaction_types=[BANK_CC_CHARGE])
            settled = {
                bank.id: sum(tx.amount_agorot for tx in self.db.list_linked_purchases(bank.id)) for bank in bank_charges
            }
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to load transactions for owner %s: %s", owner_id, e)
            result.errors.append(f"Failed to load transactions: {e}")
            return result

        if not purchases or not bank_charges:
            return result

        aggregates: dict[int, Optional[CCBankMatchResult]] = {}
        for group in group_purchases(purchases, card_numbers):
            match = find_best_bank_match(group, bank_charges, settled, settings)
            if match is None:
                logger.debug(
                    "No bank charge for card %s billed %s", group.card_last_four, group.charge_date.isoformat()
                )
                continue

            bank = match.bank_transaction
            linked_total = 0
            linked_count = 0
            for purchase in group.transactions:
                try:
                    self.db.link_purchase(purchase.id, bank.id, MATCH_RULE_AMOUNT_DATE, match.confidence)
                except SQLAlchemyError as e:
                    self.db.rollback()
                    logger.warning("Failed to link purchase %s to charge %s: %s", purchase.id, bank.id, e)
                    result.errors.append(f"Failed to link transaction {purchase.id}: {e}")
                    continue
                linked_total += purchase.amount_agorot
                linked_count += 1

            if linked_count == 0:
                continue

            settled[bank.id] = settled.get(bank.id, 0) + linked_total
            try:
                aggregates[bank.id] = self._refresh_charge(
                    owner_id, bank, card_last_four=group.card_last_four, charge_date=group.charge_date
                )
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.warning("Failed to update aggregate of charge %s: %s", bank.id, e)
                result.errors.append(f"Failed to update match result for transaction {bank.id}: {e}")

            result.matched_groups += 1
            result.matched_cc_transactions += linked_count

        result.total_discrepancy_agorot = sum(
            aggregate.discrepancy_agorot for aggregate in aggregates.values() if aggregate is not None
        )

        logger.info(
            "Owner %s: linked %d purchases in %d groups",
            owner_id,
            result.matched_cc_transactions,
            result.matched_groups,
        )
        return result

    def attach(self, owner_id: int, bank_transaction_id: int, purchase_ids: Iterable[int]) -> Optional[CCBankMatchResult]:
        """Manually link purchases to a bank charge.

        Purchases linked elsewhere are moved; the previous charge's
        aggregate is recomputed too.

        Returns:
            The bank charge's aggregate after the change

        Raises:
            NotFoundError: If a transaction doesn't exist
            ValidationError: If a transaction has the wrong type or owner
        """
        bank = self._require_owned(owner_id, bank_transaction_id, BANK_CC_CHARGE)
        purchases = [self._require_owned(owner_id, purchase_id, CC_PURCHASE) for purchase_id in purchase_ids]
        if not purchases:
            raise ValidationError("No transactions to attach")

        previous_charges: set[int] = set()
        for purchase in purchases:
            if purchase.parent_bank_charge_id is not None and purchase.parent_bank_charge_id != bank.id:
                previous_charges.add(purchase.parent_bank_charge_id)
            self.db.link_purchase(purchase.id, bank.id, MATCH_MANUAL, MANUAL_CONFIDENCE)

        for previous_id in sorted(previous_charges):
            previous = self.db.get_transaction(previous_id)
            if previous is not None:
                self._refresh_charge(owner_id, previous)

        return self._refresh_charge(owner_id, bank)

    def unlink(self, owner_id: int, purchase_ids: Iterable[int]) -> int:
        """Clear the settlement link of purchases.

        Each affected charge's aggregate is recomputed, and deleted once no
        purchase is linked to it.

        Returns:
            Number of purchases unlinked
        """
        purchases = [self._require_owned(owner_id, purchase_id, CC_PURCHASE) for purchase_id in purchase_ids]

        affected: set[int] = set()
        unlinked = 0
        for purchase in purchases:
            if purchase.parent_bank_charge_id is None:
                continue
            affected.add(purchase.parent_bank_charge_id)
            self.db.unlink_purchase(purchase.id)
            unlinked += 1

        for bank_id in sorted(affected):
            bank = self.db.get_transaction(bank_id)
            if bank is not None:
                self._refresh_charge(owner_id, bank)

        return unlinked

    def unlink_match(self, owner_id: int, match_id: int) -> int:
        """Unlink every purchase of an aggregate, which deletes it."""
        match = self._require_match(owner_id, match_id)
        linked = self.db.list_linked_purchases(match.bank_transaction_id)
        return self.unlink(owner_id, [tx.id for tx in linked])

    def update_status(self, owner_id: int, match_id: int, status: str) -> None:
        """Set the review status of an aggregate.

        Raises:
            ValidationError: If status is unknown
            NotFoundError: If the aggregate doesn't exist for the owner
        """
        if status not in REVIEW_STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(REVIEW_STATUSES)}")
        self._require_match(owner_id, match_id)
        self.db.update_match_status(match_id, status)

    def list_match_results(self, owner_id: int, status: Optional[str] = None) -> list[CCBankMatchResult]:
        """List an owner's aggregates, newest charge first."""
        if status is not None and status not in REVIEW_STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(REVIEW_STATUSES)}")
        return self.db.list_match_results(owner_id, status=status)

    def summary(self, owner_id: int) -> CCMatchSummary:
        """Counts and totals over an owner's aggregates."""
        results = self.db.list_match_results(owner_id)
        purchases = self.db.list_transactions(owner_id, transaction_types=[CC_PURCHASE])
        linked = sum(1 for tx in purchases if tx.parent_bank_charge_id is not None)

        return CCMatchSummary(
            total_matches=len(results),
            pending=sum(1 for r in results if r.status == REVIEW_PENDING),
            approved=sum(1 for r in results if r.status == REVIEW_APPROVED),
            rejected=sum(1 for r in results if r.status == REVIEW_REJECTED),
            total_discrepancy_agorot=sum(r.discrepancy_agorot for r in results),
            linked_purchases=linked,
            unlinked_purchases=len(purchases) - linked,
        )

    def _refresh_charge(
        self,
        owner_id: int,
        bank: Transaction,
        card_last_four: Optional[str] = None,
        charge_date: Optional[date] = None,
    ) -> Optional[CCBankMatchResult]:
        """Recompute a bank charge's aggregate from its current links.

        Deletes the aggregate and clears the charge's card when nothing is
        linked any more.
        """
        linked = self.db.list_linked_purchases(bank.id)
        existing = self.db.get_match_result_for_bank_transaction(bank.id)

        if not linked:
            if existing is not None:
                self.db.delete_match_result(existing.id)
                logger.debug("Deleted empty aggregate %s of charge %s", existing.id, bank.id)
            if bank.credit_card_id is not None:
                self.db.set_transaction_credit_card(bank.id, None)
            return None

        total = sum(tx.amount_agorot for tx in linked)
        confidence = min(tx.match_confidence or 0 for tx in linked)
        if card_last_four is None:
            card_last_four = existing.card_last_four if existing is not None else detect_credit_card_charge(bank.description)
        if charge_date is None:
            charge_date = existing.charge_date if existing is not None else settlement_date(linked[0])

        card_id = next((tx.credit_card_id for tx in linked if tx.credit_card_id is not None), None)
        if card_id is not None and bank.credit_card_id != card_id:
            self.db.set_transaction_credit_card(bank.id, card_id)
        if card_last_four is None and card_id is not None:
            card = self.db.get_credit_card(card_id)
            card_last_four = card.card_last_four if card is not None else None

        match_id = self.db.save_match_result(
            owner_id=owner_id,
            bank_transaction_id=bank.id,
            card_last_four=card_last_four or "",
            charge_date=charge_date,
            total_cc_amount_agorot=total,
            bank_amount_agorot=bank.amount_agorot,
            discrepancy_agorot=bank.amount_agorot - total,
            cc_transaction_count=len(linked),
            match_confidence=confidence,
        )
        return self.db.get_match_result(match_id)

    def _require_owned(self, owner_id: int, transaction_id: int, transaction_type: str) -> Transaction:
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        if transaction.owner_id != owner_id:
            raise ValidationError(cross_owner_link("Transaction", transaction_id, owner_id))
        if transaction.transaction_type != transaction_type:
            raise ValidationError(
                f"Transaction {transaction_id} is a {transaction.transaction_type}, expected {transaction_type}"
            )
        return transaction

    def _require_match(self, owner_id: int, match_id: int) -> CCBankMatchResult:
        match = self.db.get_match_result(match_id)
        if match is None or match.owner_id != owner_id:
            raise NotFoundError(match_result_not_found(match_id))
        return match
