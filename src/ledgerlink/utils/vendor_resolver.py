"""Vendor alias resolution.

Maps transaction descriptions to user-defined canonical vendor names. Among
all aliases matching a description the highest priority one wins; ties keep
the order of the input list.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from ledgerlink.domain.entities import (
    VendorAlias,
    ALIAS_EXACT,
    ALIAS_STARTS_WITH,
    ALIAS_ENDS_WITH,
)
from ledgerlink.utils.merchant import parse_merchant_name


@dataclass(frozen=True)
class VendorDisplayInfo:
    """Result of resolving a description for display."""

    display_name: str
    is_resolved: bool
    matched_alias: Optional[VendorAlias] = None


def matches_alias_pattern(description: str, alias: VendorAlias) -> bool:
    """Check a description against one alias pattern (case-insensitive).

    Unknown match types behave as ``contains``.
    """
    if not description or not alias.alias_pattern:
        return False

    normalized = description.upper().strip()
    pattern = alias.alias_pattern.upper().strip()
    if not pattern:
        return False

    if alias.match_type == ALIAS_EXACT:
        return normalized == pattern
    if alias.match_type == ALIAS_STARTS_WITH:
        return normalized.startswith(pattern)
    if alias.match_type == ALIAS_ENDS_WITH:
        return normalized.endswith(pattern)
    return pattern in normalized


def sort_aliases_by_priority(aliases: Sequence[VendorAlias]) -> list[VendorAlias]:
    """Return aliases sorted by priority, highest first (stable)."""
    return sorted(aliases, key=lambda alias: -(alias.priority or 0))


def find_matching_aliases(description: str, aliases: Sequence[VendorAlias]) -> list[VendorAlias]:
    """All aliases matching the description, highest priority first."""
    if not description or not aliases:
        return []
    return [alias for alias in sort_aliases_by_priority(aliases) if matches_alias_pattern(description, alias)]


def resolve_vendor_name(description: str, aliases: Sequence[VendorAlias]) -> Optional[str]:
    """Canonical vendor name for a description, or None if no alias matches."""
    matching = find_matching_aliases(description, aliases)
    if not matching:
        return None
    return matching[0].canonical_name


def resolve_vendor_name_with_fallback(
    description: str,
    aliases: Sequence[VendorAlias],
    fallback_parser: Optional[Callable[[str], str]] = None,
) -> str:
    """Canonical vendor name, falling back to the merchant parser."""
    if not description:
        return ""
    resolved = resolve_vendor_name(description, aliases)
    if resolved:
        return resolved
    parser = fallback_parser or parse_merchant_name
    return parser(description)


def get_vendor_display_info(description: str, aliases: Sequence[VendorAlias]) -> VendorDisplayInfo:
    """Display name plus whether it came from an alias."""
    if not description:
        return VendorDisplayInfo(display_name="", is_resolved=False)

    matching = find_matching_aliases(description, aliases)
    if matching:
        alias = matching[0]
        return VendorDisplayInfo(display_name=alias.canonical_name, is_resolved=True, matched_alias=alias)

    return VendorDisplayInfo(display_name=parse_merchant_name(description), is_resolved=False)
