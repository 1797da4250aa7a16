"""CLI error handling helpers."""

import json

import click

from ledgerlink.domain.errors import ConflictError, DomainError, NotFoundError, ValidationError

_ERROR_KINDS = (
    (ConflictError, "conflict"),
    (NotFoundError, "not_found"),
    (ValidationError, "validation"),
)


def error_kind(error: Exception) -> str:
    """Short machine-readable category of an error."""
    for error_type, kind in _ERROR_KINDS:
        if isinstance(error, error_type):
            return kind
    if isinstance(error, FileNotFoundError):
        return "not_found"
    return "invalid"


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError | OSError, as_json: bool = False) -> None:
    """Render a domain error and exit with failure.

    With ``as_json`` the error goes to stdout as ``{"error": ..., "kind": ...}``
    for commands whose output is being parsed.
    """
    if as_json:
        click.echo(json.dumps({"error": str(error), "kind": error_kind(error)}, ensure_ascii=False))
    else:
        click.echo(f"Error: {error}", err=True)
    ctx.exit(1)
