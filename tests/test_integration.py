"""Integration tests for end-to-end workflows."""

import json

from ledgerlink.cli.main import cli


def test_full_workflow(cli_runner, temp_db, fixtures_dir):
    """Test complete workflow: owner → bank import → card import → invoice → matching."""
    # Step 1: Create owner
    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "owner", "add", "Dana"])
    assert result.exit_code == 0
    assert "Created owner 'Dana'" in result.output

    # Step 2: Import bank statement (one repeated row)
    result = cli_runner.invoke(
        cli,
        [
            "--db-path",
            temp_db.database_path,
            "import-bank",
            str(fixtures_dir / "bank_statement.csv"),
            "--owner",
            "Dana",
        ],
    )
    assert result.exit_code == 0
    assert "Imported: 3 transactions" in result.output
    assert "Duplicates: 1" in result.output

    # Step 3: Import card statement and settle against the bank charge
    result = cli_runner.invoke(
        cli,
        [
            "--db-path",
            temp_db.database_path,
            "import-cards",
            str(fixtures_dir / "card_statement.csv"),
            "--owner",
            "Dana",
            "--match",
        ],
    )
    assert result.exit_code == 0
    assert "Imported: 2 transactions" in result.output
    assert "Linked to bank charges: 1 purchases" in result.output

    # Step 4: Inspect the card match result
    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "matches", "--owner", "Dana", "--json"]
    )
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["summary"]["totalMatches"] == 1
    assert data["summary"]["unlinkedPurchases"] == 1
    [match] = data["matches"]
    assert match["cardLastFour"] == "4176"
    assert match["discrepancyAgorot"] == 0

    # Step 5: Import the invoice and auto-match its line item
    result = cli_runner.invoke(
        cli,
        [
            "--db-path",
            temp_db.database_path,
            "import-invoice",
            str(fixtures_dir / "invoice_inv001.json"),
            "--owner",
            "Dana",
            "--match",
        ],
    )
    assert result.exit_code == 0
    assert "with 1 line items" in result.output
    assert "Auto-matched: 1 line items" in result.output

    # Step 6: Matching again links nothing new
    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "match-invoices", "--owner", "Dana"])
    assert result.exit_code == 0
    assert "Matched: 0 line items" in result.output

    # Step 7: Re-importing the bank statement adds nothing
    result = cli_runner.invoke(
        cli,
        [
            "--db-path",
            temp_db.database_path,
            "import-bank",
            str(fixtures_dir / "bank_statement.csv"),
            "--owner",
            "Dana",
        ],
    )
    assert result.exit_code == 0
    assert "Imported: 0 transactions" in result.output
    assert "Duplicates: 4" in result.output


def test_unlink_and_rematch_workflow(cli_runner, temp_db, sample_owner, fixtures_dir):
    """Unlinked line items and purchases are picked up by the next run."""
    db_args = ["--db-path", temp_db.database_path]

    result = cli_runner.invoke(
        cli, db_args + ["import-bank", str(fixtures_dir / "bank_statement.csv"), "--owner", "Test Owner"]
    )
    assert result.exit_code == 0
    result = cli_runner.invoke(
        cli, db_args + ["import-cards", str(fixtures_dir / "card_statement.csv"), "--owner", "Test Owner", "--match"]
    )
    assert result.exit_code == 0

    result = cli_runner.invoke(
        cli,
        db_args
        + ["import-invoice", str(fixtures_dir / "invoice_inv001.json"), "--owner", "Test Owner", "--match", "--json"],
    )
    assert result.exit_code == 0
    data = json.loads(result.output)
    [line_item_id] = data["lineItemIds"]
    assert data["autoMatch"]["matched"] == 1

    result = cli_runner.invoke(cli, db_args + ["unlink-line-item", str(line_item_id), "--owner", "Test Owner"])
    assert result.exit_code == 0
    assert f"Unlinked line item {line_item_id}" in result.output

    result = cli_runner.invoke(cli, db_args + ["match-invoices", "--owner", "Test Owner"])
    assert "Matched: 1 line items" in result.output

    [match] = temp_db.list_match_results(sample_owner.id)
    result = cli_runner.invoke(cli, db_args + ["unlink-card", "--match-id", str(match.id), "--owner", "Test Owner"])
    assert result.exit_code == 0
    assert "Unlinked 1 purchases" in result.output
    assert temp_db.list_match_results(sample_owner.id) == []

    result = cli_runner.invoke(cli, db_args + ["match-cards", "--owner", "Test Owner"])
    assert result.exit_code == 0
    assert "Purchases linked: 1" in result.output
