from __future__ import annotations

import pytest

from pairplay.game.constants import (
    AUDIENCE_COUPLES,
    AUDIENCE_FAMILY,
    AUDIENCE_FRIENDS,
    PARTY_ROLE_COUNTERPART,
    PARTY_ROLE_INITIATOR,
    SLOT_STATUS_AWAITING_COUNTERPART,
    SLOT_STATUS_AWAITING_INITIATOR,
    audience_for_relationship,
    awaiting_status_for_missing,
    default_categories_for_relationship,
    other_party_role,
)
from pairplay.game.errors import InvalidPairingPreferencesError
from pairplay.game.pairings.rules import validate_allowed_categories, validate_daily_quota


@pytest.mark.parametrize("quota", [1, 10, 50])
def test_validate_daily_quota_accepts_range(quota: int) -> None:
    assert validate_daily_quota(quota) == quota


@pytest.mark.parametrize("quota", [0, -3, 51])
def test_validate_daily_quota_rejects_out_of_range(quota: int) -> None:
    with pytest.raises(InvalidPairingPreferencesError):
        validate_daily_quota(quota)


def test_validate_allowed_categories_normalizes_and_deduplicates() -> None:
    resolved = validate_allowed_categories(
        [" Daily_Life", "fun", "daily_life", "HEART"],
        relationship_kind="ROMANTIC",
    )

    assert resolved == ("daily_life", "fun", "heart")


@pytest.mark.parametrize(
    ("categories", "relationship_kind"),
    [
        ([], "FRIEND"),
        (["astrology"], "ROMANTIC"),
        (["spice"], "FRIEND"),
        (["heart", "fun"], "SIBLING"),
    ],
)
def test_validate_allowed_categories_rejects_invalid_lists(categories, relationship_kind: str) -> None:
    with pytest.raises(InvalidPairingPreferencesError):
        validate_allowed_categories(categories, relationship_kind=relationship_kind)


def test_relationship_kind_maps_to_audience_and_defaults() -> None:
    assert audience_for_relationship("ROMANTIC") == AUDIENCE_COUPLES
    assert audience_for_relationship("PARENT") == AUDIENCE_FAMILY
    assert audience_for_relationship("FRIEND") == AUDIENCE_FRIENDS
    for kind in ("FRIEND", "FAMILY", "COUSIN"):
        assert "heart" not in default_categories_for_relationship(kind)
        validate_allowed_categories(default_categories_for_relationship(kind), relationship_kind=kind)


def test_party_role_helpers() -> None:
    assert other_party_role(PARTY_ROLE_INITIATOR) == PARTY_ROLE_COUNTERPART
    assert other_party_role(PARTY_ROLE_COUNTERPART) == PARTY_ROLE_INITIATOR
    assert awaiting_status_for_missing(PARTY_ROLE_INITIATOR) == SLOT_STATUS_AWAITING_INITIATOR
    assert awaiting_status_for_missing(PARTY_ROLE_COUNTERPART) == SLOT_STATUS_AWAITING_COUNTERPART
