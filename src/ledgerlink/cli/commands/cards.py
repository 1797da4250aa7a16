"""Credit card to bank charge matching commands."""

import json

import click
from ledgerlink.domain.cc_matching import CCBankMatchingService
from ledgerlink.domain.entities import REVIEW_STATUSES
from ledgerlink.domain.owner import OwnerService
from ledgerlink.utils.amount_parser import format_amount
from ledgerlink.cli.error_handling import handle_domain_error
from ledgerlink.cli.owner_resolution import resolve_owner_or_exit, owner_settings


@click.command("match-cards")
@click.option("--owner", required=True, envvar="LEDGERLINK_OWNER", help="Owner name or ID")
@click.option("--date-tolerance", type=int, help="Override the date tolerance (days) for this run")
@click.option("--amount-tolerance", type=float, help="Override the amount tolerance (percent) for this run")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_context
def match_cards(ctx, owner: str, date_tolerance: int | None, amount_tolerance: float | None, as_json: bool):
    """Link unlinked card purchases to the bank charges that settle them.

    Safe to re-run: linked purchases are left alone and totals are
    recomputed from the current links.
    """
    db = ctx.obj["db"]
    owner_id = resolve_owner_or_exit(ctx, OwnerService(db), owner)
    settings = owner_settings(
        ctx, owner_id, date_tolerance_days=date_tolerance, amount_tolerance_percent=amount_tolerance
    )

    result = CCBankMatchingService(db).run_matching(owner_id, settings)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return

    click.echo("\nCard matching complete:")
    click.echo(f"  Groups matched: {result.matched_groups}")
    click.echo(f"  Purchases linked: {result.matched_cc_transactions}")
    click.echo(f"  Total discrepancy: {format_amount(result.total_discrepancy_agorot)}")
    if result.errors:
        click.echo(f"  Errors: {len(result.errors)}")
        for error in result.errors:
            click.echo(f"    {error}", err=True)


@click.command("attach-card")
@click.argument("bank_transaction_id", type=int)
@click.argument("purchase_ids", type=int, nargs=-1, required=True)
@click.option("--owner", required=True, envvar="LEDGERLINK_OWNER", help="Owner name or ID")
@click.pass_context
def attach_card(ctx, bank_transaction_id: int, purchase_ids: tuple[int, ...], owner: str):
    """Manually link card purchases to a bank charge.

    Examples:
        ledgerlink attach-card 12 40 41 --owner Dana
    """
    db = ctx.obj["db"]
    owner_id = resolve_owner_or_exit(ctx, OwnerService(db), owner)

    try:
        match = CCBankMatchingService(db).attach(owner_id, bank_transaction_id, purchase_ids)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Linked {len(purchase_ids)} purchases to bank charge {bank_transaction_id}")
    if match is not None:
        click.echo(f"  Discrepancy: {format_amount(match.discrepancy_agorot)}")


@click.command("unlink-card")
@click.argument("purchase_ids", type=int, nargs=-1)
@click.option("--owner", required=True, envvar="LEDGERLINK_OWNER", help="Owner name or ID")
@click.option("--match-id", type=int, help="Unlink every purchase of this match result")
@click.pass_context
def unlink_card(ctx, purchase_ids: tuple[int, ...], owner: str, match_id: int | None):
    """Remove card purchases from the bank charge they are linked to.

    A bank charge left without purchases loses its match result.
    """
    db = ctx.obj["db"]
    owner_id = resolve_owner_or_exit(ctx, OwnerService(db), owner)
    service = CCBankMatchingService(db)

    if not purchase_ids and match_id is None:
        click.echo("Error: Give purchase IDs or --match-id", err=True)
        ctx.exit(1)

    try:
        count = 0
        if match_id is not None:
            count += service.unlink_match(owner_id, match_id)
        if purchase_ids:
            count += service.unlink(owner_id, purchase_ids)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Unlinked {count} purchases")


@click.command("match-status")
@click.argument("match_id", type=int)
@click.argument("status", type=click.Choice(REVIEW_STATUSES))
@click.option("--owner", required=True, envvar="LEDGERLINK_OWNER", help="Owner name or ID")
@click.pass_context
def match_status(ctx, match_id: int, status: str, owner: str):
    """Approve, reject or reopen a card match result."""
    db = ctx.obj["db"]
    owner_id = resolve_owner_or_exit(ctx, OwnerService(db), owner)

    try:
        CCBankMatchingService(db).update_status(owner_id, match_id, status)
        click.echo(f"Match result {match_id} is now {status}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@click.command("matches")
@click.option("--owner", required=True, envvar="LEDGERLINK_OWNER", help="Owner name or ID")
@click.option("--status", type=click.Choice(REVIEW_STATUSES), help="Only show results with this status")
@click.option("--json", "as_json", is_flag=True, help="Print the results as JSON")
@click.pass_context
def list_matches(ctx, owner: str, status: str | None, as_json: bool):
    """List card match results, newest charge first."""
    db = ctx.obj["db"]
    owner_id = resolve_owner_or_exit(ctx, OwnerService(db), owner)
    service = CCBankMatchingService(db)

    results = service.list_match_results(owner_id, status=status)

    if as_json:
        data = {
            "summary": service.summary(owner_id).to_dict(),
            "matches": [
                {
                    "id": r.id,
                    "bankTransactionId": r.bank_transaction_id,
                    "cardLastFour": r.card_last_four,
                    "chargeDate": r.charge_date.isoformat(),
                    "totalCCAmountAgorot": r.total_cc_amount_agorot,
                    "bankAmountAgorot": r.bank_amount_agorot,
                    "discrepancyAgorot": r.discrepancy_agorot,
                    "ccTransactionCount": r.cc_transaction_count,
                    "matchConfidence": r.match_confidence,
                    "status": r.status,
                }
                for r in results
            ],
        }
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return

    if not results:
        click.echo("No match results found.")
        return

    click.echo("\nCard match results:")
    click.echo("-" * 80)
    for r in results:
        click.echo(
            f"ID: {r.id:3d} | {r.charge_date.isoformat()} | card {r.card_last_four} | "
            f"{r.cc_transaction_count:2d} purchases | bank {format_amount(r.bank_amount_agorot):>12s} | "
            f"diff {format_amount(r.discrepancy_agorot):>10s} | {r.match_confidence:3d}% | {r.status}"
        )


def register_commands(cli):
    """Register card matching commands with main CLI."""
    cli.add_command(match_cards)
    cli.add_command(attach_card)
    cli.add_command(unlink_card)
    cli.add_command(match_status)
    cli.add_command(list_matches, name="matches")
