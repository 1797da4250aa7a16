"""Tests for statement CSV reading and import."""

from datetime import date

import pytest

from conftest import bank_row, card_row
from ledgerlink.domain.entities import BANK_CC_CHARGE, BANK_REGULAR, CC_PURCHASE
from ledgerlink.domain.errors import ValidationError
from ledgerlink.domain.statement_import import read_bank_csv, read_card_csv


def test_read_bank_csv(fixtures_dir):
    """Bank exports are read day-first into minor units."""
    rows, errors = read_bank_csv(str(fixtures_dir / "bank_statement.csv"))

    assert errors == []
    assert len(rows) == 4
    first = rows[0]
    assert first.date == date(2024, 1, 5)
    assert first.value_date == date(2024, 1, 5)
    assert first.description == "ELECTRIC CO"
    assert first.reference == "R1"
    assert first.amount_agorot == -12000
    assert first.balance_agorot == 100000
    assert rows[2].reference is None


def test_read_card_csv(fixtures_dir):
    """Card charges become negative amounts and the card is reduced to four digits."""
    rows, errors = read_card_csv(str(fixtures_dir / "card_statement.csv"))

    assert errors == []
    assert len(rows) == 2
    assert rows[0].amount_agorot == -9900
    assert rows[0].billing_date is None
    assert rows[0].card_last_four == "4176"
    assert rows[1].card_last_four == "4176"
    assert rows[1].billing_date == date(2024, 3, 10)
    assert rows[1].foreign_amount == -1000
    assert rows[1].foreign_currency == "USD"


def test_read_card_csv_default_card(tmp_path):
    """Files without a card column use the card given by the caller."""
    csv_file = tmp_path / "card.csv"
    csv_file.write_text("Date,Merchant,Amount,Currency\n01/02/2024,WOLT,45.50,ILS\n03/02/2024,WOLT,-20.00,\n")

    rows, errors = read_card_csv(str(csv_file), card_last_four="1234")
    assert errors == []
    assert [row.card_last_four for row in rows] == ["1234", "1234"]
    assert rows[0].amount_agorot == -4550
    assert rows[0].foreign_currency is None
    assert rows[1].amount_agorot == 2000


def test_read_csv_row_errors(tmp_path):
    """Bad rows are reported and the rest is kept."""
    csv_file = tmp_path / "bank.csv"
    csv_file.write_text(
        "Date,Description,Amount\n"
        "05/01/2024,,-10.00\n"
        "06/01/2024,SHOP,abc\n"
        "07/01/2024,SHOP,-5.00\n"
    )

    rows, errors = read_bank_csv(str(csv_file))
    assert len(rows) == 1
    assert errors[0] == "Row 2: Missing description"
    assert errors[1].startswith("Row 3:")


def test_read_csv_missing_columns(tmp_path):
    """Missing required columns fail the whole file."""
    csv_file = tmp_path / "bank.csv"
    csv_file.write_text("Date,Amount\n05/01/2024,-10.00\n")

    with pytest.raises(ValidationError, match="description"):
        read_bank_csv(str(csv_file))


def test_read_csv_missing_file(tmp_path):
    """Test that a missing file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        read_bank_csv(str(tmp_path / "nope.csv"))


def test_hebrew_headers(tmp_path):
    """Hebrew export headers are recognized."""
    csv_file = tmp_path / "bank.csv"
    csv_file.write_text("תאריך,תיאור,סכום\n05/01/2024,חשמל,-120.00\n", encoding="utf-8")

    rows, errors = read_bank_csv(str(csv_file))
    assert errors == []
    assert rows[0].description == "חשמל"
    assert rows[0].amount_agorot == -12000


def test_import_bank_classifies_card_charges(import_service, temp_db, sample_owner, fixtures_dir):
    """Card settlement rows are stored as card charges."""
    rows, _ = read_bank_csv(str(fixtures_dir / "bank_statement.csv"))

    result = import_service.import_bank_transactions(sample_owner.id, rows)
    assert result.total_items == 4
    assert result.imported == 3
    assert result.duplicates == 1
    assert len(result.transaction_ids) == 3

    charges = temp_db.list_transactions(sample_owner.id, transaction_types=[BANK_CC_CHARGE])
    assert [tx.description for tx in charges] == ["VISA 4176 CHARGE"]
    regular = temp_db.list_transactions(sample_owner.id, transaction_types=[BANK_REGULAR])
    assert len(regular) == 2


def test_reimport_imports_nothing(import_service, sample_owner, fixtures_dir):
    """A statement imported twice adds no rows the second time."""
    rows, _ = read_bank_csv(str(fixtures_dir / "bank_statement.csv"))
    import_service.import_bank_transactions(sample_owner.id, rows)

    result = import_service.import_bank_transactions(sample_owner.id, rows)
    assert result.imported == 0
    assert result.duplicates == 4
    assert result.to_dict()["duplicateCount"] == 4


def test_keep_duplicates(import_service, temp_db, sample_owner):
    """Kept duplicates are stored under their own hash."""
    row = bank_row(date(2024, 1, 5), "ELECTRIC CO", -12000, reference="R1")

    result = import_service.import_bank_transactions(sample_owner.id, [row, row], keep_duplicates=True)
    assert result.imported == 2
    assert result.duplicates == 1

    stored = temp_db.list_transactions(sample_owner.id)
    assert len(stored) == 2
    assert stored[0].hash != stored[1].hash


def test_rows_without_date_skipped(import_service, sample_owner):
    """Rows missing a date or amount are skipped, not stored."""
    rows = [
        bank_row(None, "NO DATE", -100),
        bank_row(date(2024, 1, 5), "NO AMOUNT", None),
        bank_row(date(2024, 1, 5), "OK", -100),
    ]

    result = import_service.import_bank_transactions(sample_owner.id, rows)
    assert result.skipped == 2
    assert result.imported == 1
    assert result.errors == ["Row 1: Missing date", "Row 2: Missing amount"]


def test_import_cards(import_service, temp_db, sample_owner, fixtures_dir):
    """Card rows become purchases linked to the owner's card."""
    rows, _ = read_card_csv(str(fixtures_dir / "card_statement.csv"))

    result = import_service.import_credit_card_transactions(sample_owner.id, rows)
    assert result.imported == 2

    [card] = temp_db.list_credit_cards(sample_owner.id)
    assert card.card_last_four == "4176"

    purchases = temp_db.list_transactions(sample_owner.id, transaction_types=[CC_PURCHASE])
    assert {tx.credit_card_id for tx in purchases} == {card.id}
    amazon = next(tx for tx in purchases if tx.description == "AMAZON")
    assert amazon.value_date == date(2024, 3, 10)
    assert amazon.foreign_currency == "USD"
    assert amazon.foreign_amount_cents == -1000


def test_import_is_owner_scoped(import_service, sample_owner, other_owner):
    """The same rows import for each owner."""
    rows = [card_row(date(2024, 2, 1), "WOLT", -9900)]

    assert import_service.import_credit_card_transactions(sample_owner.id, rows).imported == 1
    assert import_service.import_credit_card_transactions(other_owner.id, rows).imported == 1
