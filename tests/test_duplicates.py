"""Tests for file, transaction and line item duplicate detection."""

from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from conftest import bank_row, card_row, line_item
from ledgerlink.domain.duplicates import (
    MATCH_EXACT,
    MATCH_EXISTING,
    MATCH_SAME_BATCH,
    MATCH_SEMANTIC,
    amounts_within_percent,
    line_item_key,
)


@pytest.fixture
def electric_rows():
    return [
        bank_row(date(2024, 1, 5), "ELECTRIC CO", -12000, reference="R1"),
        bank_row(date(2024, 1, 6), "WATER CORP", -4500, reference="R2"),
        bank_row(date(2024, 1, 7), "SALARY", 1500000),
    ]


def test_fresh_batch_is_all_new(detector, sample_owner, electric_rows):
    """Nothing stored means nothing is a duplicate."""
    result = detector.check_transaction_duplicates(sample_owner.id, electric_rows)
    assert result.duplicate_count == 0
    assert result.new_count == 3
    assert result.total_items == 3


def test_reimporting_batch_flags_every_row(detector, import_service, sample_owner, electric_rows):
    """A batch imported twice is entirely duplicate the second time."""
    import_service.import_bank_transactions(sample_owner.id, electric_rows)

    result = detector.check_transaction_duplicates(sample_owner.id, electric_rows)
    assert result.duplicate_count == len(electric_rows)
    assert result.new_count == 0
    assert {match.match_type for match in result.matches} == {MATCH_EXISTING}


def test_repeated_row_in_same_batch(detector, sample_owner):
    """The second of two identical rows in one file is a duplicate."""
    row = bank_row(date(2024, 1, 5), "ELECTRIC CO", -12000, reference="R1")

    result = detector.check_transaction_duplicates(sample_owner.id, [row, row])
    assert result.duplicate_count == 1
    assert result.new_count == 1
    assert result.matches[0].match_type == MATCH_SAME_BATCH

    data = result.to_dict()
    assert data["duplicateCount"] == 1
    assert data["newCount"] == 1


def test_duplicates_are_owner_scoped(detector, import_service, sample_owner, other_owner, electric_rows):
    """Another owner's identical rows are not duplicates."""
    import_service.import_bank_transactions(sample_owner.id, electric_rows)

    result = detector.check_transaction_duplicates(other_owner.id, electric_rows)
    assert result.duplicate_count == 0


def test_card_rows_detected(detector, import_service, sample_owner):
    """Card rows are deduplicated on their own key."""
    rows = [card_row(date(2024, 2, 1), "WOLT", -9900, billing_date=date(2024, 2, 10))]
    import_service.import_credit_card_transactions(sample_owner.id, rows)

    assert detector.check_transaction_duplicates(sample_owner.id, rows).duplicate_count == 1
    other_card = [card_row(date(2024, 2, 1), "WOLT", -9900, card="1234", billing_date=date(2024, 2, 10))]
    assert detector.check_transaction_duplicates(sample_owner.id, other_card).duplicate_count == 0


def test_failed_lookup_treats_rows_as_new(detector, sample_owner, electric_rows, monkeypatch):
    """A storage failure never drops rows."""

    def broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(detector.db, "get_existing_hashes", broken)

    result = detector.check_transaction_duplicates(sample_owner.id, electric_rows)
    assert result.new_count == 3
    assert result.duplicate_count == 0


def test_file_exact_duplicate(detector, invoice_service, sample_owner):
    """Same name and size is an exact duplicate."""
    first = invoice_service.register_file(sample_owner.id, "march.pdf", 2048)
    assert not first.duplicate_check.is_duplicate

    check = detector.check_file_duplicate(sample_owner.id, "march.pdf", 2048)
    assert check.is_exact
    assert check.matches[0].match_type == MATCH_EXACT
    assert check.matches[0].confidence == 100
    assert check.matches[0].existing_file.id == first.file_id


def test_file_same_name_other_size(detector, invoice_service, sample_owner):
    """Same name with another size is a weaker match."""
    invoice_service.register_file(sample_owner.id, "march.pdf", 2048)

    check = detector.check_file_duplicate(sample_owner.id, "march.pdf", 4096)
    assert check.is_duplicate
    assert not check.is_exact
    assert check.matches[0].match_type == MATCH_SEMANTIC
    assert check.matches[0].confidence == 75


def test_file_check_is_owner_scoped(detector, invoice_service, sample_owner, other_owner):
    """Files of another owner never match."""
    invoice_service.register_file(sample_owner.id, "march.pdf", 2048)
    assert not detector.check_file_duplicate(other_owner.id, "march.pdf", 2048).is_duplicate


def test_semantic_invoice_duplicate(detector, invoice_service, sample_owner):
    """Same vendor with amount within 2% and date within 2 days."""
    registration = invoice_service.register_file(sample_owner.id, "acme-march.pdf", 1000)
    invoice_service.record_extraction(
        sample_owner.id,
        registration.file_id,
        vendor_name="Acme Supplies",
        invoice_number="A-17",
        invoice_date=date(2024, 3, 1),
        total_amount_agorot=10000,
        line_items=[],
    )

    matches = detector.check_semantic_duplicate(sample_owner.id, "Acme Supplies", 10100, date(2024, 3, 2))
    assert len(matches) == 1
    assert matches[0].existing_file.id == registration.file_id
    assert matches[0].confidence == 85

    assert detector.check_semantic_duplicate(sample_owner.id, "Acme Supplies", 11000, date(2024, 3, 2)) == []
    assert detector.check_semantic_duplicate(sample_owner.id, "Acme Supplies", 10000, date(2024, 3, 8)) == []
    assert detector.check_semantic_duplicate(sample_owner.id, "Globex", 10000, date(2024, 3, 1)) == []


def test_semantic_check_needs_all_fields(detector, sample_owner):
    """Missing vendor, amount or date means no semantic check."""
    assert detector.check_semantic_duplicate(sample_owner.id, None, 10000, date(2024, 3, 1)) == []
    assert detector.check_semantic_duplicate(sample_owner.id, "Acme", None, date(2024, 3, 1)) == []
    assert detector.check_semantic_duplicate(sample_owner.id, "Acme", 10000, None) == []


def test_line_item_duplicates(detector, invoice_service, sample_owner):
    """Line items match on reference, date, amount and currency."""
    stored = line_item(date(2024, 3, 10), 50000, reference_id="INV-001")
    invoice_service.record_extraction(
        sample_owner.id, None, "Acme", "INV-001", date(2024, 3, 10), 50000, [stored]
    )

    result = detector.check_line_item_duplicates(
        sample_owner.id,
        [
            line_item(date(2024, 3, 10), 50000, reference_id="INV-001"),
            line_item(date(2024, 3, 10), 50001, reference_id="INV-001"),
            line_item(date(2024, 3, 10), 50000, reference_id="INV-001", currency="USD"),
            line_item(date(2024, 3, 10), 50000),
        ],
    )
    assert result.duplicate_count == 1
    assert result.new_count == 3
    assert result.matches[0].existing_items[0].reference_id == "INV-001"


def test_line_item_key():
    """Composite key layout."""
    assert line_item_key("INV-1", date(2024, 3, 10), 500, None) == "INV-1|2024-03-10|500|ILS"
    assert line_item_key(None, None, None, "USD") == "|||USD"


def test_amounts_within_percent():
    """Tolerance is relative to the larger amount."""
    assert amounts_within_percent(10000, 10200, 2)
    assert not amounts_within_percent(10000, 10300, 2)
    assert amounts_within_percent(0, 0, 2)

