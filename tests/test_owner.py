"""Tests for owners, owner settings and vendor alias services."""

import pytest

from ledgerlink.domain.entities import ALIAS_STARTS_WITH
from ledgerlink.domain.errors import ConflictError, NotFoundError, ValidationError
from ledgerlink.utils.owner_resolver import resolve_owner


def test_create_owner(owner_service):
    """Test creating an owner."""
    owner_id = owner_service.create_owner("Dana")
    owner = owner_service.get_owner(owner_id)
    assert owner.name == "Dana"
    assert owner.kind == "user"


def test_create_owner_validation(owner_service):
    """Empty names, unknown kinds and duplicate names are rejected."""
    with pytest.raises(ValidationError):
        owner_service.create_owner("  ")
    with pytest.raises(ValidationError):
        owner_service.create_owner("Dana", kind="company")

    owner_service.create_owner("Dana")
    with pytest.raises(ConflictError):
        owner_service.create_owner("Dana")


def test_list_owners(owner_service, sample_owner, other_owner):
    """Test listing owners."""
    names = {owner.name for owner in owner_service.list_owners()}
    assert names == {"Test Owner", "Other Team"}


def test_settings_default_for_new_owner(owner_service, sample_owner):
    """A new owner uses the default settings."""
    settings = owner_service.get_settings(sample_owner.id)
    assert settings.auto_approve_threshold == 85
    assert settings.date_range_days == 30


def test_update_settings_persists(owner_service, sample_owner, other_owner):
    """Overrides are stored per owner."""
    owner_service.update_settings(sample_owner.id, auto_approve_threshold=90, date_tolerance_days=3)

    settings = owner_service.get_settings(sample_owner.id)
    assert settings.auto_approve_threshold == 90
    assert settings.date_tolerance_days == 3
    assert settings.candidate_threshold == 50

    assert owner_service.get_settings(other_owner.id).auto_approve_threshold == 85


def test_update_settings_stores_clamped_values(owner_service, sample_owner):
    """Stored overrides are already clamped."""
    updated = owner_service.update_settings(sample_owner.id, candidate_threshold=120)
    assert updated.candidate_threshold == 100
    assert updated.auto_approve_threshold == 100

    settings = owner_service.get_settings(sample_owner.id)
    assert settings.candidate_threshold == 100
    assert settings.auto_approve_threshold == 100


def test_settings_for_missing_owner(owner_service):
    """Settings of an unknown owner raise NotFoundError."""
    with pytest.raises(NotFoundError):
        owner_service.get_settings(999)


def test_resolve_owner_by_name_and_id(owner_service, sample_owner):
    """Owners resolve by name, numeric string or int."""
    assert resolve_owner(owner_service, "Test Owner") == sample_owner.id
    assert resolve_owner(owner_service, str(sample_owner.id)) == sample_owner.id
    assert resolve_owner(owner_service, sample_owner.id) == sample_owner.id


def test_resolve_owner_missing(owner_service, sample_owner):
    """Unknown owners raise NotFoundError."""
    with pytest.raises(NotFoundError):
        resolve_owner(owner_service, "Nobody")
    with pytest.raises(NotFoundError):
        resolve_owner(owner_service, 999)


def test_numeric_owner_name_wins_over_id(owner_service, sample_owner):
    """An owner literally named like an ID is found by name first."""
    named_id = owner_service.create_owner(str(sample_owner.id + 100))
    assert resolve_owner(owner_service, str(sample_owner.id + 100)) == named_id


def test_alias_crud(alias_service, sample_owner):
    """Test creating, listing and deleting aliases."""
    alias_id = alias_service.create_alias(sample_owner.id, " PAYPAL *ADOBE ", "Adobe", match_type=ALIAS_STARTS_WITH)

    aliases = alias_service.list_aliases(sample_owner.id)
    assert len(aliases) == 1
    assert aliases[0].alias_pattern == "PAYPAL *ADOBE"
    assert aliases[0].match_type == ALIAS_STARTS_WITH

    alias_service.delete_alias(sample_owner.id, alias_id)
    assert alias_service.list_aliases(sample_owner.id) == []


def test_alias_validation(alias_service, sample_owner):
    """Empty fields and unknown match types are rejected."""
    with pytest.raises(ValidationError):
        alias_service.create_alias(sample_owner.id, "", "Adobe")
    with pytest.raises(ValidationError):
        alias_service.create_alias(sample_owner.id, "ADOBE", " ")
    with pytest.raises(ValidationError):
        alias_service.create_alias(sample_owner.id, "ADOBE", "Adobe", match_type="regex")


def test_alias_is_owner_scoped(alias_service, sample_owner, other_owner):
    """Aliases are listed and deleted only within their owner."""
    alias_id = alias_service.create_alias(sample_owner.id, "ADOBE", "Adobe")

    assert alias_service.list_aliases(other_owner.id) == []
    with pytest.raises(ValidationError):
        alias_service.delete_alias(other_owner.id, alias_id)
    with pytest.raises(NotFoundError):
        alias_service.delete_alias(sample_owner.id, 999)


def test_alias_display_info(alias_service, sample_owner, other_owner):
    """Display info uses the owner's aliases only."""
    alias_service.create_alias(sample_owner.id, "ADOBE", "Adobe Inc")

    assert alias_service.display_info(sample_owner.id, "PAYPAL *ADOBE").display_name == "Adobe Inc"
    assert not alias_service.display_info(other_owner.id, "PAYPAL *ADOBE").is_resolved
