"""Invoice and line item matching commands."""

import json
from pathlib import Path

import click
from ledgerlink.domain.entities import MATCH_UNMATCHED
from ledgerlink.domain.errors import ValidationError
from ledgerlink.domain.invoice import InvoiceService, extracted_invoice_from_dict
from ledgerlink.domain.line_item_matching import LineItemMatchingService, STATUS_CANDIDATE
from ledgerlink.domain.owner import OwnerService
from ledgerlink.domain.settings import DuplicatePolicy
from ledgerlink.cli.error_handling import handle_domain_error
from ledgerlink.cli.owner_resolution import resolve_owner_or_exit, owner_settings


@click.command("import-invoice")
@click.argument("extraction_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--owner", required=True, envvar="LEDGERLINK_OWNER", help="Owner name or ID")
@click.option(
    "--document",
    type=click.Path(exists=True, dir_okay=False),
    help="Uploaded document the extraction came from (duplicate-checked by name and size)",
)
@click.option(
    "--policy",
    type=click.Choice([p.value for p in DuplicatePolicy]),
    default=DuplicatePolicy.WARN.value,
    show_default=True,
    help="Whether duplicate documents are only reported or refused",
)
@click.option("--match", "run_match", is_flag=True, help="Auto-match the new line items afterwards")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_context
def import_invoice(
    ctx, extraction_file: str, owner: str, document: str | None, policy: str, run_match: bool, as_json: bool
):
    """Record an invoice from an extraction JSON document.

    Amounts in the document are integer minor units (agorot, cents) and
    dates are ISO formatted.

    Examples:
        ledgerlink import-invoice inv.json --owner Dana --document inv.pdf
        ledgerlink import-invoice inv.json --owner Dana --policy block --match
    """
    db = ctx.obj["db"]
    owner_id = resolve_owner_or_exit(ctx, OwnerService(db), owner)
    service = InvoiceService(db)

    try:
        with open(extraction_file, "r", encoding="utf-8") as f:
            extracted = extracted_invoice_from_dict(json.load(f))

        document_name = document_size = None
        if document is not None:
            path = Path(document)
            document_name, document_size = path.name, path.stat().st_size

        registration, result = service.import_extraction(
            owner_id, extracted, document_name=document_name, document_size=document_size, policy=policy
        )
    except json.JSONDecodeError as e:
        handle_domain_error(ctx, ValidationError(f"Invalid extraction document: {e}"), as_json)
        return
    except ValueError as e:
        handle_domain_error(ctx, e, as_json)
        return

    batch = None
    if run_match and result.line_item_ids:
        matcher = LineItemMatchingService(db)
        batch = matcher.auto_match_invoices(owner_id, [result.invoice_id], owner_settings(ctx, owner_id))

    if as_json:
        data = result.to_dict()
        if registration is not None:
            data["file"] = registration.to_dict()
        if batch is not None:
            data["autoMatch"] = batch.to_dict()
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return

    click.echo(f"Created invoice {result.invoice_id} with {len(result.line_item_ids)} line items")
    if result.duplicate_line_items:
        click.echo(f"  Skipped {result.duplicate_line_items} line items already recorded")
    if registration is not None:
        for match in registration.duplicate_check.matches:
            click.echo(
                f"  Warning: {match.match_reason} as file {match.existing_file.id} "
                f"'{match.existing_file.original_name}' ({match.confidence}%)",
                err=True,
            )
    for match in result.semantic_duplicates:
        click.echo(f"  Warning: {match.match_reason} in file {match.existing_file.id}", err=True)
    if batch is not None:
        click.echo(f"  Auto-matched: {batch.matched} line items")


@click.command("match-invoices")
@click.argument("invoice_ids", type=int, nargs=-1)
@click.option("--owner", required=True, envvar="LEDGERLINK_OWNER", help="Owner name or ID")
@click.option("--force", is_flag=True, help="Re-match line items that are already linked")
@click.option("--auto-approve", type=int, help="Override the auto-approve threshold for this run")
@click.option("--candidate", type=int, help="Override the candidate threshold for this run")
@click.option("--date-range", type=int, help="Override the date window (days) for this run")
@click.option("--max-candidates", type=int, help="Suggestions kept per line item")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_context
def match_invoices(
    ctx,
    invoice_ids: tuple[int, ...],
    owner: str,
    force: bool,
    auto_approve: int | None,
    candidate: int | None,
    date_range: int | None,
    max_candidates: int | None,
    as_json: bool,
):
    """Auto-match invoice line items to transactions.

    INVOICE_IDS default to all of the owner's invoices. A transaction is
    linked to at most one line item.

    Examples:
        ledgerlink match-invoices --owner Dana
        ledgerlink match-invoices 4 7 --owner Dana --auto-approve 90
    """
    db = ctx.obj["db"]
    owner_id = resolve_owner_or_exit(ctx, OwnerService(db), owner)

    settings = owner_settings(
        ctx,
        owner_id,
        auto_approve_threshold=auto_approve,
        candidate_threshold=candidate,
        date_range_days=date_range,
        max_candidates=max_candidates,
    )
    if not invoice_ids:
        invoice_ids = tuple(inv.id for inv in InvoiceService(db).list_invoices(owner_id))

    result = LineItemMatchingService(db).auto_match_invoices(owner_id, invoice_ids, settings, force_rematch=force)

    if as_json:
        click.echo(json.dumps(result.to_dict(include_line_items=True), indent=2, ensure_ascii=False))
        return

    click.echo("\nMatching complete:")
    click.echo(f"  Invoices: {result.processed_invoices}/{result.total_invoices}")
    click.echo(f"  Matched: {result.matched} line items")
    click.echo(f"  Skipped: {result.skipped}")
    if result.failed:
        click.echo(f"  Failed: {result.failed}")
    for invoice_result in result.results:
        if invoice_result.error:
            click.echo(f"    Invoice {invoice_result.invoice_id}: {invoice_result.error}", err=True)
        for item in invoice_result.line_items:
            if item.status == STATUS_CANDIDATE:
                offered = ", ".join(f"#{c.transaction_id} ({c.total})" for c in item.candidates)
                click.echo(f"    Line item {item.line_item_id}: candidates {offered}")


@click.command("link-line-item")
@click.argument("line_item_id", type=int)
@click.argument("transaction_id", type=int)
@click.option("--owner", required=True, envvar="LEDGERLINK_OWNER", help="Owner name or ID")
@click.pass_context
def link_line_item(ctx, line_item_id: int, transaction_id: int, owner: str):
    """Manually link a line item to a transaction."""
    db = ctx.obj["db"]
    owner_id = resolve_owner_or_exit(ctx, OwnerService(db), owner)

    try:
        InvoiceService(db).link_line_item(owner_id, line_item_id, transaction_id)
        click.echo(f"Linked line item {line_item_id} to transaction {transaction_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@click.command("unlink-line-item")
@click.argument("line_item_id", type=int)
@click.option("--owner", required=True, envvar="LEDGERLINK_OWNER", help="Owner name or ID")
@click.pass_context
def unlink_line_item(ctx, line_item_id: int, owner: str):
    """Remove a line item's transaction link."""
    db = ctx.obj["db"]
    owner_id = resolve_owner_or_exit(ctx, OwnerService(db), owner)

    try:
        if InvoiceService(db).unlink_line_item(owner_id, line_item_id):
            click.echo(f"Unlinked line item {line_item_id} (transaction is now {MATCH_UNMATCHED})")
        else:
            click.echo(f"Line item {line_item_id} was not linked")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register invoice commands with main CLI."""
    cli.add_command(import_invoice)
    cli.add_command(match_invoices)
    cli.add_command(link_line_item)
    cli.add_command(unlink_line_item)
