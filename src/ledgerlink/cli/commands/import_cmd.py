"""Statement import commands."""

import json

import click
from ledgerlink.domain.cc_matching import CCBankMatchingService
from ledgerlink.domain.owner import OwnerService
from ledgerlink.domain.statement_import import StatementImportService, ImportResult, read_bank_csv, read_card_csv
from ledgerlink.cli.error_handling import handle_domain_error
from ledgerlink.cli.owner_resolution import resolve_owner_or_exit, owner_settings


def _report(result: ImportResult, read_errors: list[str], as_json: bool) -> None:
    if as_json:
        data = result.to_dict()
        data["errors"] = read_errors + data["errors"]
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return

    click.echo("\nImport complete:")
    click.echo(f"  Imported: {result.imported} transactions")
    click.echo(f"  Duplicates: {result.duplicates}")
    errors = read_errors + result.errors
    if errors:
        click.echo(f"  Errors: {len(errors)}")
        for error in errors:
            click.echo(f"    {error}", err=True)


def _run_card_matching(ctx, owner_id: int, quiet: bool) -> None:
    result = CCBankMatchingService(ctx.obj["db"]).run_matching(owner_id, owner_settings(ctx, owner_id))
    if not quiet:
        click.echo(f"  Linked to bank charges: {result.matched_cc_transactions} purchases")


@click.command("import-bank")
@click.argument("csv_file", type=click.Path(exists=True))
@click.option("--owner", required=True, envvar="LEDGERLINK_OWNER", help="Owner name or ID")
@click.option("--month-first", is_flag=True, help="Read ambiguous dates as month/day")
@click.option("--match", "run_match", is_flag=True, help="Link card purchases to new bank charges afterwards")
@click.option("--keep-duplicates", is_flag=True, help="Store rows flagged as duplicates anyway")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_context
def import_bank(
    ctx, csv_file: str, owner: str, month_first: bool, run_match: bool, keep_duplicates: bool, as_json: bool
):
    """Import a bank statement CSV.

    Rows already imported for the owner are reported as duplicates and not
    stored again. Rows naming a card (e.g. "VISA 4176") become card charges.
    """
    db = ctx.obj["db"]
    owner_id = resolve_owner_or_exit(ctx, OwnerService(db), owner)

    try:
        rows, read_errors = read_bank_csv(csv_file, dayfirst=not month_first)
        result = StatementImportService(db).import_bank_transactions(owner_id, rows, keep_duplicates=keep_duplicates)
    except (ValueError, FileNotFoundError) as e:
        handle_domain_error(ctx, e, as_json)
        return

    _report(result, read_errors, as_json)
    if run_match:
        _run_card_matching(ctx, owner_id, quiet=as_json)


@click.command("import-cards")
@click.argument("csv_file", type=click.Path(exists=True))
@click.option("--owner", required=True, envvar="LEDGERLINK_OWNER", help="Owner name or ID")
@click.option("--card", "card_last_four", help="Card last four digits, for files without a card column")
@click.option("--month-first", is_flag=True, help="Read ambiguous dates as month/day")
@click.option("--match", "run_match", is_flag=True, help="Link the purchases to bank charges afterwards")
@click.option("--keep-duplicates", is_flag=True, help="Store rows flagged as duplicates anyway")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_context
def import_cards(
    ctx,
    csv_file: str,
    owner: str,
    card_last_four: str | None,
    month_first: bool,
    run_match: bool,
    keep_duplicates: bool,
    as_json: bool,
):
    """Import a credit card statement CSV."""
    db = ctx.obj["db"]
    owner_id = resolve_owner_or_exit(ctx, OwnerService(db), owner)

    try:
        rows, read_errors = read_card_csv(csv_file, dayfirst=not month_first, card_last_four=card_last_four)
        result = StatementImportService(db).import_credit_card_transactions(owner_id, rows, keep_duplicates=keep_duplicates)
    except (ValueError, FileNotFoundError) as e:
        handle_domain_error(ctx, e, as_json)
        return

    _report(result, read_errors, as_json)
    if run_match:
        _run_card_matching(ctx, owner_id, quiet=as_json)


def register_commands(cli):
    """Register import commands with main CLI."""
    cli.add_command(import_bank)
    cli.add_command(import_cards)
