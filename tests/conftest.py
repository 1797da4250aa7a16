"""Shared pytest fixtures for ledgerlink tests."""

import tempfile
import os
from datetime import date
from pathlib import Path
import pytest

from ledgerlink.database.factories import create_sqlite_database
from ledgerlink.domain.cc_matching import CCBankMatchingService
from ledgerlink.domain.duplicates import DuplicateDetector
from ledgerlink.domain.entities import ParsedTransaction, ParsedCreditCardTransaction, ExtractedLineItem
from ledgerlink.domain.invoice import InvoiceService
from ledgerlink.domain.line_item_matching import LineItemMatchingService
from ledgerlink.domain.owner import OwnerService
from ledgerlink.domain.settings import MatchingSettings
from ledgerlink.domain.statement_import import StatementImportService
from ledgerlink.domain.vendor_alias import VendorAliasService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def owner_service(temp_db):
    """Create an OwnerService with a temporary database."""
    return OwnerService(temp_db)


@pytest.fixture
def alias_service(temp_db):
    """Create a VendorAliasService with a temporary database."""
    return VendorAliasService(temp_db)


@pytest.fixture
def detector(temp_db):
    """Create a DuplicateDetector with a temporary database."""
    return DuplicateDetector(temp_db)


@pytest.fixture
def import_service(temp_db):
    """Create a StatementImportService with a temporary database."""
    return StatementImportService(temp_db)


@pytest.fixture
def invoice_service(temp_db):
    """Create an InvoiceService with a temporary database."""
    return InvoiceService(temp_db)


@pytest.fixture
def cc_service(temp_db):
    """Create a CCBankMatchingService with a temporary database."""
    return CCBankMatchingService(temp_db)


@pytest.fixture
def matcher(temp_db):
    """Create a LineItemMatchingService with a temporary database."""
    return LineItemMatchingService(temp_db)


@pytest.fixture
def settings():
    """Default matching settings."""
    return MatchingSettings()


@pytest.fixture
def sample_owner(owner_service):
    """Create a sample owner for testing."""
    owner_id = owner_service.create_owner(name="Test Owner")
    return owner_service.get_owner(owner_id)


@pytest.fixture
def other_owner(owner_service):
    """Create a second owner for scope tests."""
    owner_id = owner_service.create_owner(name="Other Team", kind="team")
    return owner_service.get_owner(owner_id)


def bank_row(
    day: date,
    description: str,
    amount: int,
    reference: str | None = None,
    value_date: date | None = None,
) -> ParsedTransaction:
    """Build a parsed bank row."""
    return ParsedTransaction(
        date=day,
        description=description,
        amount_agorot=amount,
        reference=reference,
        value_date=value_date,
    )


def card_row(
    day: date,
    merchant: str,
    amount: int,
    card: str = "4176",
    billing_date: date | None = None,
    foreign_amount: int | None = None,
    foreign_currency: str | None = None,
) -> ParsedCreditCardTransaction:
    """Build a parsed credit card row."""
    return ParsedCreditCardTransaction(
        date=day,
        merchant_name=merchant,
        amount_agorot=amount,
        card_last_four=card,
        billing_date=billing_date,
        foreign_amount=foreign_amount,
        foreign_currency=foreign_currency,
    )


def line_item(
    day: date | None,
    amount: int | None,
    reference_id: str | None = None,
    description: str | None = None,
    currency: str = "ILS",
) -> ExtractedLineItem:
    """Build an extracted line item."""
    return ExtractedLineItem(
        date=day,
        description=description,
        reference_id=reference_id,
        amount=amount,
        currency=currency,
    )


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
