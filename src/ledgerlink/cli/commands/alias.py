"""Vendor alias commands."""

import click
from ledgerlink.domain.entities import ALIAS_MATCH_TYPES, ALIAS_CONTAINS
from ledgerlink.domain.owner import OwnerService
from ledgerlink.domain.vendor_alias import VendorAliasService
from ledgerlink.cli.error_handling import handle_domain_error
from ledgerlink.cli.owner_resolution import resolve_owner_or_exit


@click.group()
def alias_group():
    """Manage vendor aliases."""
    pass


@alias_group.command("add")
@click.argument("pattern", metavar="PATTERN")
@click.argument("canonical_name", metavar="VENDOR_NAME")
@click.option("--owner", required=True, envvar="LEDGERLINK_OWNER", help="Owner name or ID")
@click.option(
    "--match-type",
    type=click.Choice(ALIAS_MATCH_TYPES),
    default=ALIAS_CONTAINS,
    show_default=True,
    help="How PATTERN is compared with descriptions",
)
@click.option("--priority", type=int, default=0, show_default=True, help="Higher wins when several aliases match")
@click.pass_context
def add_alias(ctx, pattern: str, canonical_name: str, owner: str, match_type: str, priority: int):
    """Map descriptions containing PATTERN to VENDOR_NAME.

    Examples:
        ledgerlink alias add "AMZN" "Amazon" --owner Dana
        ledgerlink alias add "PAYPAL *ADOBE" "Adobe" --owner Dana --match-type starts_with
    """
    db = ctx.obj["db"]
    owner_id = resolve_owner_or_exit(ctx, OwnerService(db), owner)
    service = VendorAliasService(db)

    try:
        alias_id = service.create_alias(
            owner_id, pattern, canonical_name, match_type=match_type, priority=priority
        )
        click.echo(f"Created alias '{pattern}' -> '{canonical_name}' (ID: {alias_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@alias_group.command("list")
@click.option("--owner", required=True, envvar="LEDGERLINK_OWNER", help="Owner name or ID")
@click.pass_context
def list_aliases(ctx, owner: str):
    """List an owner's vendor aliases."""
    db = ctx.obj["db"]
    owner_id = resolve_owner_or_exit(ctx, OwnerService(db), owner)

    aliases = VendorAliasService(db).list_aliases(owner_id)
    if not aliases:
        click.echo("No aliases found.")
        return

    click.echo("\nVendor aliases:")
    click.echo("-" * 70)
    for al in aliases:
        click.echo(
            f"ID: {al.id:3d} | {al.alias_pattern:20s} | {al.match_type:11s} | "
            f"{al.canonical_name} (priority {al.priority})"
        )


@alias_group.command("remove")
@click.argument("alias_id", type=int, metavar="ALIAS_ID")
@click.option("--owner", required=True, envvar="LEDGERLINK_OWNER", help="Owner name or ID")
@click.pass_context
def remove_alias(ctx, alias_id: int, owner: str):
    """Delete a vendor alias."""
    db = ctx.obj["db"]
    owner_id = resolve_owner_or_exit(ctx, OwnerService(db), owner)

    try:
        VendorAliasService(db).delete_alias(owner_id, alias_id)
        click.echo(f"Deleted alias {alias_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@alias_group.command("resolve")
@click.argument("description", metavar="DESCRIPTION")
@click.option("--owner", required=True, envvar="LEDGERLINK_OWNER", help="Owner name or ID")
@click.pass_context
def resolve_alias(ctx, description: str, owner: str):
    """Show the vendor name a transaction description resolves to.

    Examples:
        ledgerlink alias resolve "AMZN MKTP US*2K4" --owner Dana
    """
    db = ctx.obj["db"]
    owner_id = resolve_owner_or_exit(ctx, OwnerService(db), owner)

    info = VendorAliasService(db).display_info(owner_id, description)
    if info.is_resolved:
        click.echo(f"{info.display_name} (alias {info.matched_alias.id}: '{info.matched_alias.alias_pattern}')")
    else:
        click.echo(f"{info.display_name} (parsed, no alias)")


def register_commands(cli):
    """Register alias commands with main CLI."""
    cli.add_command(alias_group, name="alias")
