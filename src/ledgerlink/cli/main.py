"""Main CLI entry point."""

import logging

import click
from ledgerlink.database.factories import create_database

# Import and register all commands at module level
from ledgerlink.cli.commands import (
    owner,
    alias,
    import_cmd,
    invoice,
    cards,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to SQLite database file (overrides LEDGERLINK_DB_PATH environment variable)",
    envvar="LEDGERLINK_DB_PATH",
)
@click.option(
    "--db-url",
    help="SQLAlchemy database URL, used instead of --db-path",
    envvar="LEDGERLINK_DATABASE_URL",
)
@click.option("--verbose", "-v", is_flag=True, help="Log matching decisions (DEBUG level)")
@click.pass_context
def cli(ctx, db_path: str | None, db_url: str | None, verbose: bool):
    """Ledgerlink - Reconciliation for bank, credit card and invoice records.

    Import statements without duplicates, link card purchases to the bank
    charges that settle them, and match invoice line items to transactions.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # Connect only when a subcommand runs, so --help works without a database
    if ctx.invoked_subcommand is not None:
        db = create_database(database_url=db_url, database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
owner.register_commands(cli)
alias.register_commands(cli)
import_cmd.register_commands(cli)
invoice.register_commands(cli)
cards.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
