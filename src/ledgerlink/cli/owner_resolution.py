"""CLI helpers for owner resolution and matching settings."""

from __future__ import annotations

import click

from ledgerlink.domain.owner import OwnerService
from ledgerlink.domain.settings import MatchingSettings
from ledgerlink.utils.owner_resolver import resolve_owner
from ledgerlink.cli.error_handling import handle_domain_error


def resolve_owner_or_exit(ctx: click.Context, owner_service: OwnerService, owner: str | int) -> int:
    """Resolve owner name or ID, or exit with a CLI error.

    This keeps error messaging and exit behavior consistent across commands.
    """
    try:
        return resolve_owner(owner_service, owner)
    except ValueError as exc:
        handle_domain_error(ctx, exc)


def owner_settings(ctx: click.Context, owner_id: int, **overrides) -> MatchingSettings:
    """Owner's stored matching settings with per-run overrides applied."""
    service = OwnerService(ctx.obj["db"])
    return service.get_settings(owner_id).with_overrides(**overrides)
