"""Tests for vendor alias resolution."""

from ledgerlink.domain.entities import VendorAlias, ALIAS_EXACT, ALIAS_STARTS_WITH, ALIAS_ENDS_WITH, ALIAS_CONTAINS
from ledgerlink.utils.vendor_resolver import (
    find_matching_aliases,
    get_vendor_display_info,
    matches_alias_pattern,
    resolve_vendor_name,
    resolve_vendor_name_with_fallback,
)


def make_alias(alias_id, pattern, canonical, match_type=ALIAS_CONTAINS, priority=0):
    return VendorAlias(
        id=alias_id,
        owner_id=1,
        alias_pattern=pattern,
        match_type=match_type,
        canonical_name=canonical,
        priority=priority,
    )


def test_match_types():
    """Each match type compares case-insensitively."""
    assert matches_alias_pattern("paypal *adobe", make_alias(1, "PAYPAL *ADOBE", "Adobe", ALIAS_EXACT))
    assert not matches_alias_pattern("PAYPAL *ADOBE 123", make_alias(1, "PAYPAL *ADOBE", "Adobe", ALIAS_EXACT))
    assert matches_alias_pattern("PAYPAL *ADOBE 123", make_alias(1, "paypal", "PayPal", ALIAS_STARTS_WITH))
    assert matches_alias_pattern("CHARGE FROM GITHUB", make_alias(1, "github", "GitHub", ALIAS_ENDS_WITH))
    assert matches_alias_pattern("X GITHUB Y", make_alias(1, "github", "GitHub", ALIAS_CONTAINS))
    assert not matches_alias_pattern("", make_alias(1, "github", "GitHub"))


def test_unknown_match_type_behaves_as_contains():
    """Unknown match types fall back to substring matching."""
    assert matches_alias_pattern("X GITHUB Y", make_alias(1, "github", "GitHub", "regex"))


def test_highest_priority_wins():
    """Among matching aliases the highest priority is chosen."""
    aliases = [
        make_alias(1, "PAYPAL", "PayPal", priority=0),
        make_alias(2, "ADOBE", "Adobe", priority=10),
    ]
    assert resolve_vendor_name("PAYPAL *ADOBE", aliases) == "Adobe"
    assert [a.id for a in find_matching_aliases("PAYPAL *ADOBE", aliases)] == [2, 1]


def test_equal_priority_keeps_input_order():
    """Ties are resolved by list order."""
    aliases = [make_alias(1, "PAYPAL", "PayPal"), make_alias(2, "ADOBE", "Adobe")]
    assert resolve_vendor_name("PAYPAL *ADOBE", aliases) == "PayPal"


def test_no_alias_resolves_to_none():
    """Without a matching alias the resolver returns None."""
    assert resolve_vendor_name("NETFLIX", [make_alias(1, "ADOBE", "Adobe")]) is None


def test_fallback_uses_merchant_parser():
    """Unresolved descriptions fall back to the parsed merchant name."""
    assert resolve_vendor_name_with_fallback("AMZN*2K4J5", []) == "Amazon"
    assert resolve_vendor_name_with_fallback("AMZN*2K4J5", [], fallback_parser=str.lower) == "amzn*2k4j5"
    assert resolve_vendor_name_with_fallback("", []) == ""


def test_display_info():
    """Display info reports whether an alias was used."""
    alias = make_alias(3, "ADOBE", "Adobe Inc")
    info = get_vendor_display_info("PAYPAL *ADOBE", [alias])
    assert info.display_name == "Adobe Inc"
    assert info.is_resolved
    assert info.matched_alias == alias

    info = get_vendor_display_info("SPOTIFY P1234", [alias])
    assert info.display_name == "Spotify"
    assert not info.is_resolved
    assert info.matched_alias is None
