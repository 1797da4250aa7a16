"""Tests for database mappers."""

from datetime import datetime, date, UTC

from ledgerlink.database.models import (
    Owner as ORMOwner,
    Transaction as ORMTransaction,
    InvoiceLineItem as ORMInvoiceLineItem,
    VendorAlias as ORMVendorAlias,
    CCBankMatchResult as ORMCCBankMatchResult,
)
from ledgerlink.database.mappers import (
    owner_to_domain,
    transaction_to_domain,
    line_item_to_domain,
    vendor_alias_to_domain,
    match_result_to_domain,
)
from ledgerlink.domain.entities import (
    Owner,
    Transaction,
    InvoiceLineItem,
    VendorAlias,
    CCBankMatchResult,
)


class TestOwnerMapper:
    """Tests for Owner mapper."""

    def test_owner_to_domain(self):
        """Test converting ORM Owner to domain Owner."""
        orm_owner = ORMOwner(id=1, name="Dana", kind="user", created_at=datetime.now(UTC))
        domain_owner = owner_to_domain(orm_owner)

        assert isinstance(domain_owner, Owner)
        assert domain_owner.id == 1
        assert domain_owner.name == "Dana"
        assert domain_owner.kind == "user"
        assert domain_owner.created_at == orm_owner.created_at


class TestTransactionMapper:
    """Tests for Transaction mapper."""

    def test_bank_row_to_domain(self):
        """Test converting a bank row."""
        orm_transaction = ORMTransaction(
            id=7,
            owner_id=1,
            date=date(2024, 1, 5),
            value_date=date(2024, 1, 6),
            description="ELECTRIC CO",
            reference="R1",
            amount_agorot=-12000,
            transaction_type="bank_regular",
            hash="abc",
            match_status="unmatched",
        )
        tx = transaction_to_domain(orm_transaction)

        assert isinstance(tx, Transaction)
        assert tx.id == 7
        assert tx.amount_agorot == -12000
        assert tx.value_date == date(2024, 1, 6)
        assert tx.reference == "R1"
        assert tx.credit_card_id is None
        assert tx.parent_bank_charge_id is None

    def test_card_purchase_to_domain(self):
        """Card fields survive conversion."""
        orm_transaction = ORMTransaction(
            id=8,
            owner_id=1,
            date=date(2024, 2, 1),
            description="AMAZON",
            amount_agorot=-3700,
            transaction_type="cc_purchase",
            hash="def",
            match_status="matched",
            foreign_amount_cents=-1000,
            foreign_currency="USD",
            credit_card_id=3,
            parent_bank_charge_id=9,
            match_confidence=85,
        )
        tx = transaction_to_domain(orm_transaction)

        assert tx.foreign_currency == "USD"
        assert tx.foreign_amount_cents == -1000
        assert tx.credit_card_id == 3
        assert tx.parent_bank_charge_id == 9
        assert tx.match_confidence == 85


class TestLineItemMapper:
    """Tests for InvoiceLineItem mapper."""

    def test_line_item_to_domain(self):
        """Test converting a linked line item."""
        matched_at = datetime.now(UTC)
        orm_item = ORMInvoiceLineItem(
            id=3,
            invoice_id=2,
            description="Consulting March",
            reference_id="INV-001",
            transaction_date=date(2024, 3, 10),
            amount_agorot=50000,
            currency="ILS",
            vat_rate=17.0,
            vat_amount_agorot=7265,
            transaction_id=11,
            match_method="auto_approved",
            match_confidence=85,
            matched_at=matched_at,
        )
        item = line_item_to_domain(orm_item)

        assert isinstance(item, InvoiceLineItem)
        assert item.reference_id == "INV-001"
        assert item.transaction_id == 11
        assert item.match_method == "auto_approved"
        assert item.matched_at == matched_at


class TestVendorAliasMapper:
    """Tests for VendorAlias mapper."""

    def test_vendor_alias_to_domain(self):
        orm_alias = ORMVendorAlias(
            id=4, owner_id=1, alias_pattern="AMZN", match_type="contains", canonical_name="Amazon", priority=2
        )
        alias = vendor_alias_to_domain(orm_alias)

        assert isinstance(alias, VendorAlias)
        assert alias.alias_pattern == "AMZN"
        assert alias.canonical_name == "Amazon"
        assert alias.priority == 2


class TestMatchResultMapper:
    """Tests for CCBankMatchResult mapper."""

    def test_match_result_to_domain(self):
        orm_result = ORMCCBankMatchResult(
            id=5,
            owner_id=1,
            bank_transaction_id=9,
            card_last_four="4176",
            charge_date=date(2024, 2, 2),
            total_cc_amount_agorot=-9900,
            bank_amount_agorot=-9900,
            discrepancy_agorot=0,
            cc_transaction_count=1,
            match_confidence=85,
            status="pending",
        )
        result = match_result_to_domain(orm_result)

        assert isinstance(result, CCBankMatchResult)
        assert result.bank_transaction_id == 9
        assert result.discrepancy_agorot == 0
        assert result.status == "pending"
