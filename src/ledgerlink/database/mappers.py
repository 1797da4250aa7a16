"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so services never see ORM rows.
"""

from ledgerlink.domain import entities as domain
from ledgerlink.database.models import (
    Owner as ORMOwner,
    CreditCard as ORMCreditCard,
    Transaction as ORMTransaction,
    File as ORMFile,
    Invoice as ORMInvoice,
    InvoiceLineItem as ORMInvoiceLineItem,
    VendorAlias as ORMVendorAlias,
    CCBankMatchResult as ORMCCBankMatchResult,
)


def owner_to_domain(orm_owner: ORMOwner) -> domain.Owner:
    """Convert SQLAlchemy Owner model to domain Owner entity."""
    return domain.Owner(
        id=orm_owner.id,
        name=orm_owner.name,
        kind=orm_owner.kind,
        created_at=orm_owner.created_at,
    )


def credit_card_to_domain(orm_card: ORMCreditCard) -> domain.CreditCard:
    """Convert SQLAlchemy CreditCard model to domain CreditCard entity."""
    return domain.CreditCard(
        id=orm_card.id,
        owner_id=orm_card.owner_id,
        card_last_four=orm_card.card_last_four,
        card_name=orm_card.card_name,
        created_at=orm_card.created_at,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        owner_id=orm_transaction.owner_id,
        date=orm_transaction.date,
        description=orm_transaction.description,
        amount_agorot=orm_transaction.amount_agorot,
        transaction_type=orm_transaction.transaction_type,
        hash=orm_transaction.hash,
        match_status=orm_transaction.match_status,
        value_date=orm_transaction.value_date,
        reference=orm_transaction.reference,
        balance_agorot=orm_transaction.balance_agorot,
        foreign_amount_cents=orm_transaction.foreign_amount_cents,
        foreign_currency=orm_transaction.foreign_currency,
        credit_card_id=orm_transaction.credit_card_id,
        parent_bank_charge_id=orm_transaction.parent_bank_charge_id,
        match_confidence=orm_transaction.match_confidence,
        imported_at=orm_transaction.imported_at,
    )


def file_to_domain(orm_file: ORMFile) -> domain.FileRecord:
    """Convert SQLAlchemy File model to domain FileRecord entity."""
    return domain.FileRecord(
        id=orm_file.id,
        owner_id=orm_file.owner_id,
        original_name=orm_file.original_name,
        size_bytes=orm_file.size_bytes,
        file_hash=orm_file.file_hash,
        created_at=orm_file.created_at,
    )


def invoice_to_domain(orm_invoice: ORMInvoice) -> domain.Invoice:
    """Convert SQLAlchemy Invoice model to domain Invoice entity."""
    return domain.Invoice(
        id=orm_invoice.id,
        owner_id=orm_invoice.owner_id,
        file_id=orm_invoice.file_id,
        vendor_name=orm_invoice.vendor_name,
        invoice_number=orm_invoice.invoice_number,
        invoice_date=orm_invoice.invoice_date,
        total_amount_agorot=orm_invoice.total_amount_agorot,
        currency=orm_invoice.currency,
        created_at=orm_invoice.created_at,
    )


def line_item_to_domain(orm_item: ORMInvoiceLineItem) -> domain.InvoiceLineItem:
    """Convert SQLAlchemy InvoiceLineItem model to domain InvoiceLineItem entity."""
    return domain.InvoiceLineItem(
        id=orm_item.id,
        invoice_id=orm_item.invoice_id,
        description=orm_item.description,
        reference_id=orm_item.reference_id,
        transaction_date=orm_item.transaction_date,
        amount_agorot=orm_item.amount_agorot,
        currency=orm_item.currency,
        vat_rate=orm_item.vat_rate,
        vat_amount_agorot=orm_item.vat_amount_agorot,
        transaction_id=orm_item.transaction_id,
        match_method=orm_item.match_method,
        match_confidence=orm_item.match_confidence,
        matched_at=orm_item.matched_at,
        created_at=orm_item.created_at,
    )


def vendor_alias_to_domain(orm_alias: ORMVendorAlias) -> domain.VendorAlias:
    """Convert SQLAlchemy VendorAlias model to domain VendorAlias entity."""
    return domain.VendorAlias(
        id=orm_alias.id,
        owner_id=orm_alias.owner_id,
        alias_pattern=orm_alias.alias_pattern,
        match_type=orm_alias.match_type,
        canonical_name=orm_alias.canonical_name,
        priority=orm_alias.priority,
        created_at=orm_alias.created_at,
    )


def match_result_to_domain(orm_result: ORMCCBankMatchResult) -> domain.CCBankMatchResult:
    """Convert SQLAlchemy CCBankMatchResult model to domain CCBankMatchResult entity."""
    return domain.CCBankMatchResult(
        id=orm_result.id,
        owner_id=orm_result.owner_id,
        bank_transaction_id=orm_result.bank_transaction_id,
        card_last_four=orm_result.card_last_four,
        charge_date=orm_result.charge_date,
        total_cc_amount_agorot=orm_result.total_cc_amount_agorot,
        bank_amount_agorot=orm_result.bank_amount_agorot,
        discrepancy_agorot=orm_result.discrepancy_agorot,
        cc_transaction_count=orm_result.cc_transaction_count,
        match_confidence=orm_result.match_confidence,
        status=orm_result.status,
        created_at=orm_result.created_at,
    )
