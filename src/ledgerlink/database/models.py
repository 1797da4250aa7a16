"""SQLAlchemy models for the ledgerlink database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    ForeignKey,
    DateTime,
    Date,
    Index,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _now() -> datetime:
    return datetime.now(UTC)


class Owner(Base):
    """Owner scope (user or team) with optional matching overrides."""

    __tablename__ = "owners"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    kind = Column(String, nullable=False, default="user")
    created_at = Column(DateTime, default=_now, nullable=False)

    # Matching overrides, NULL means "use the default"
    date_tolerance_days = Column(Integer, nullable=True)
    amount_tolerance_percent = Column(Float, nullable=True)
    auto_approve_threshold = Column(Integer, nullable=True)
    candidate_threshold = Column(Integer, nullable=True)
    date_range_days = Column(Integer, nullable=True)

    # Relationships
    transactions = relationship("Transaction", back_populates="owner", cascade="all, delete-orphan")
    credit_cards = relationship("CreditCard", back_populates="owner", cascade="all, delete-orphan")


class CreditCard(Base):
    """Credit card known for an owner."""

    __tablename__ = "credit_cards"

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, ForeignKey("owners.id"), nullable=False)
    card_last_four = Column(String(4), nullable=False)
    card_name = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (UniqueConstraint("owner_id", "card_last_four", name="uq_owner_card_last_four"),)

    owner = relationship("Owner", back_populates="credit_cards")


class Transaction(Base):
    """Unified ledger row."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, ForeignKey("owners.id"), nullable=False)
    date = Column(Date, nullable=False)
    value_date = Column(Date, nullable=True)
    description = Column(String, nullable=False)
    reference = Column(String, nullable=True)
    amount_agorot = Column(Integer, nullable=False)
    balance_agorot = Column(Integer, nullable=True)
    foreign_amount_cents = Column(Integer, nullable=True)
    foreign_currency = Column(String(3), nullable=True)
    transaction_type = Column(String, nullable=False)
    credit_card_id = Column(Integer, ForeignKey("credit_cards.id"), nullable=True)
    parent_bank_charge_id = Column(Integer, ForeignKey("transactions.id"), nullable=True)
    hash = Column(String, nullable=False)
    match_status = Column(String, nullable=False, default="unmatched")
    match_confidence = Column(Integer, nullable=True)
    imported_at = Column(DateTime, default=_now, nullable=False)

    # Deduplication is enforced by the constraint itself
    __table_args__ = (
        UniqueConstraint("owner_id", "hash", name="uq_owner_hash"),
        Index("ix_transactions_owner_type_date", "owner_id", "transaction_type", "date"),
        Index("ix_transactions_parent_charge", "parent_bank_charge_id"),
    )

    owner = relationship("Owner", back_populates="transactions")


class File(Base):
    """Uploaded document file."""

    __tablename__ = "files"

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, ForeignKey("owners.id"), nullable=False)
    original_name = Column(String, nullable=False)
    size_bytes = Column(Integer, nullable=False)
    file_hash = Column(String, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (Index("ix_files_owner_hash", "owner_id", "file_hash"),)


class Invoice(Base):
    """Invoice extracted from a file."""

    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, ForeignKey("owners.id"), nullable=False)
    file_id = Column(Integer, ForeignKey("files.id"), nullable=True)
    vendor_name = Column(String, nullable=True)
    invoice_number = Column(String, nullable=True)
    invoice_date = Column(Date, nullable=True)
    total_amount_agorot = Column(Integer, nullable=True)
    currency = Column(String(3), nullable=False, default="ILS")
    created_at = Column(DateTime, default=_now, nullable=False)

    line_items = relationship(
        "InvoiceLineItem", back_populates="invoice", cascade="all, delete-orphan", order_by="InvoiceLineItem.id"
    )


class InvoiceLineItem(Base):
    """Invoice line item, optionally linked to one transaction."""

    __tablename__ = "invoice_line_items"

    id = Column(Integer, primary_key=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False)
    description = Column(String, nullable=True)
    reference_id = Column(String, nullable=True)
    transaction_date = Column(Date, nullable=True)
    amount_agorot = Column(Integer, nullable=True)
    currency = Column(String(3), nullable=False, default="ILS")
    vat_rate = Column(Float, nullable=True)
    vat_amount_agorot = Column(Integer, nullable=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=True)
    match_method = Column(String, nullable=True)
    match_confidence = Column(Integer, nullable=True)
    matched_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (
        Index("ix_line_items_reference", "reference_id"),
        Index("ix_line_items_transaction", "transaction_id"),
    )

    invoice = relationship("Invoice", back_populates="line_items")


class VendorAlias(Base):
    """Owner-scoped vendor alias rule."""

    __tablename__ = "vendor_aliases"

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, ForeignKey("owners.id"), nullable=False)
    alias_pattern = Column(String, nullable=False)
    match_type = Column(String, nullable=False, default="contains")
    canonical_name = Column(String, nullable=False)
    priority = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=_now, nullable=False)


class CCBankMatchResult(Base):
    """Aggregate of card purchases settled by one bank charge."""

    __tablename__ = "cc_bank_match_results"

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, ForeignKey("owners.id"), nullable=False)
    bank_transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=False, unique=True)
    card_last_four = Column(String(4), nullable=False)
    charge_date = Column(Date, nullable=False)
    total_cc_amount_agorot = Column(Integer, nullable=False)
    bank_amount_agorot = Column(Integer, nullable=False)
    discrepancy_agorot = Column(Integer, nullable=False)
    cc_transaction_count = Column(Integer, nullable=False)
    match_confidence = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default="pending")
    created_at = Column(DateTime, default=_now, nullable=False)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
