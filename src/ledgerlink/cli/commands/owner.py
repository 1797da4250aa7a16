"""Owner management commands."""

import click
from ledgerlink.domain.owner import OwnerService
from ledgerlink.cli.error_handling import handle_domain_error
from ledgerlink.cli.owner_resolution import resolve_owner_or_exit


@click.group()
def owner_group():
    """Manage owners (users and teams)."""
    pass


@owner_group.command("add")
@click.argument("name", metavar="OWNER_NAME")
@click.option("--team", is_flag=True, help="Create a team owner instead of a user")
@click.pass_context
def add_owner(ctx, name: str, team: bool):
    """Create a new owner.

    Examples:
        ledgerlink owner add "Dana"
        ledgerlink owner add "Bookkeeping" --team
    """
    service = OwnerService(ctx.obj["db"])

    try:
        owner_id = service.create_owner(name=name, kind="team" if team else "user")
        click.echo(f"Created owner '{name}' (ID: {owner_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@owner_group.command("list")
@click.pass_context
def list_owners(ctx):
    """List all owners."""
    service = OwnerService(ctx.obj["db"])

    owners = service.list_owners()
    if not owners:
        click.echo("No owners found.")
        return

    click.echo("\nOwners:")
    click.echo("-" * 60)
    for own in owners:
        click.echo(f"ID: {own.id:3d} | {own.name:20s} | {own.kind}")


@owner_group.command("settings")
@click.argument("owner", metavar="OWNER")
@click.option("--date-tolerance", type=int, help="CC-bank: max days between billing date and bank charge")
@click.option("--amount-tolerance", type=float, help="CC-bank: max percent gap between card total and charge")
@click.option("--auto-approve", type=int, help="Line items: score at which a match is linked")
@click.option("--candidate", type=int, help="Line items: lowest score offered as a suggestion")
@click.option("--date-range", type=int, help="Line items: days searched around the line item date")
@click.pass_context
def owner_settings(
    ctx,
    owner: str,
    date_tolerance: int | None,
    amount_tolerance: float | None,
    auto_approve: int | None,
    candidate: int | None,
    date_range: int | None,
):
    """Show or update an owner's matching settings.

    OWNER can be an owner name or ID. Without options the current
    settings are shown. Out-of-range values are clamped.

    Examples:
        ledgerlink owner settings "Dana"
        ledgerlink owner settings "Dana" --auto-approve 90 --date-range 14
    """
    service = OwnerService(ctx.obj["db"])
    owner_id = resolve_owner_or_exit(ctx, service, owner)

    try:
        settings = service.update_settings(
            owner_id,
            date_tolerance_days=date_tolerance,
            amount_tolerance_percent=amount_tolerance,
            auto_approve_threshold=auto_approve,
            candidate_threshold=candidate,
            date_range_days=date_range,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"\nMatching settings for owner {owner_id}:")
    click.echo("-" * 60)
    click.echo(f"  Date tolerance:      {settings.date_tolerance_days} days")
    click.echo(f"  Amount tolerance:    {settings.amount_tolerance_percent}%")
    click.echo(f"  Auto-approve at:     {settings.auto_approve_threshold}")
    click.echo(f"  Candidates from:     {settings.candidate_threshold}")
    click.echo(f"  Line item window:    {settings.date_range_days} days")


def register_commands(cli):
    """Register owner commands with main CLI."""
    cli.add_command(owner_group, name="owner")
