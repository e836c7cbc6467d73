from __future__ import annotations

PAIRING_STATUS_PENDING = "PENDING"
PAIRING_STATUS_ACCEPTED = "ACCEPTED"
PAIRING_STATUS_DECLINED = "DECLINED"
PAIRING_STATUS_BLOCKED = "BLOCKED"
PAIRING_STATUS_EXPIRED = "EXPIRED"

PAIRING_STATUSES: frozenset[str] = frozenset(
    {
        PAIRING_STATUS_PENDING,
        PAIRING_STATUS_ACCEPTED,
        PAIRING_STATUS_DECLINED,
        PAIRING_STATUS_BLOCKED,
        PAIRING_STATUS_EXPIRED,
    }
)

RELATIONSHIP_ROMANTIC = "ROMANTIC"
RELATIONSHIP_FRIEND = "FRIEND"
RELATIONSHIP_FAMILY = "FAMILY"
RELATIONSHIP_SIBLING = "SIBLING"
RELATIONSHIP_PARENT = "PARENT"
RELATIONSHIP_CHILD = "CHILD"
RELATIONSHIP_COUSIN = "COUSIN"

FAMILY_RELATIONSHIP_KINDS: frozenset[str] = frozenset(
    {
        RELATIONSHIP_FAMILY,
        RELATIONSHIP_SIBLING,
        RELATIONSHIP_PARENT,
        RELATIONSHIP_CHILD,
        RELATIONSHIP_COUSIN,
    }
)
RELATIONSHIP_KINDS: frozenset[str] = frozenset(
    {RELATIONSHIP_ROMANTIC, RELATIONSHIP_FRIEND, *FAMILY_RELATIONSHIP_KINDS}
)

AUDIENCE_COUPLES = "COUPLES"
AUDIENCE_FRIENDS = "FRIENDS"
AUDIENCE_FAMILY = "FAMILY"

CATEGORY_DAILY_LIFE = "daily_life"
CATEGORY_HEART = "heart"
CATEGORY_HISTORY = "history"
CATEGORY_SPICE = "spice"
CATEGORY_FUN = "fun"
CATEGORY_DEEP_TALKS = "deep_talks"

QUESTION_CATEGORIES: frozenset[str] = frozenset(
    {
        CATEGORY_DAILY_LIFE,
        CATEGORY_HEART,
        CATEGORY_HISTORY,
        CATEGORY_SPICE,
        CATEGORY_FUN,
        CATEGORY_DEEP_TALKS,
    }
)
ROMANTIC_ONLY_CATEGORIES: frozenset[str] = frozenset({CATEGORY_HEART, CATEGORY_SPICE})

DEFAULT_ROMANTIC_CATEGORIES: tuple[str, ...] = (
    CATEGORY_DAILY_LIFE,
    CATEGORY_HEART,
    CATEGORY_HISTORY,
    CATEGORY_FUN,
)
DEFAULT_FRIEND_CATEGORIES: tuple[str, ...] = (
    CATEGORY_DAILY_LIFE,
    CATEGORY_FUN,
    CATEGORY_DEEP_TALKS,
)
DEFAULT_FAMILY_CATEGORIES: tuple[str, ...] = (
    CATEGORY_DAILY_LIFE,
    CATEGORY_FUN,
    CATEGORY_HISTORY,
)

DAILY_QUOTA_MIN = 1
DAILY_QUOTA_MAX = 50

SLOT_STATUS_AWAITING_BOTH = "AWAITING_BOTH"
SLOT_STATUS_AWAITING_INITIATOR = "AWAITING_INITIATOR"
SLOT_STATUS_AWAITING_COUNTERPART = "AWAITING_COUNTERPART"
SLOT_STATUS_COMPLETED = "COMPLETED"
SLOT_STATUS_EXPIRED = "EXPIRED"

SLOT_OPEN_STATUSES: frozenset[str] = frozenset(
    {
        SLOT_STATUS_AWAITING_BOTH,
        SLOT_STATUS_AWAITING_INITIATOR,
        SLOT_STATUS_AWAITING_COUNTERPART,
    }
)

# Monotonic order used to drop stale or repeated change events.
SLOT_STATUS_RANK: dict[str, int] = {
    SLOT_STATUS_AWAITING_BOTH: 0,
    SLOT_STATUS_AWAITING_INITIATOR: 1,
    SLOT_STATUS_AWAITING_COUNTERPART: 1,
    SLOT_STATUS_COMPLETED: 2,
    SLOT_STATUS_EXPIRED: 2,
}


def audience_for_relationship(relationship_kind: str) -> str:
    if relationship_kind == RELATIONSHIP_ROMANTIC:
        return AUDIENCE_COUPLES
    if relationship_kind in FAMILY_RELATIONSHIP_KINDS:
        return AUDIENCE_FAMILY
    return AUDIENCE_FRIENDS


def default_categories_for_relationship(relationship_kind: str) -> tuple[str, ...]:
    if relationship_kind == RELATIONSHIP_ROMANTIC:
        return DEFAULT_ROMANTIC_CATEGORIES
    if relationship_kind in FAMILY_RELATIONSHIP_KINDS:
        return DEFAULT_FAMILY_CATEGORIES
    return DEFAULT_FRIEND_CATEGORIES


PARTY_ROLE_INITIATOR = "INITIATOR"
PARTY_ROLE_COUNTERPART = "COUNTERPART"
PARTY_ROLES: frozenset[str] = frozenset({PARTY_ROLE_INITIATOR, PARTY_ROLE_COUNTERPART})

MATCH_OUTCOME_MATCH = "MATCH"
MATCH_OUTCOME_NO_MATCH = "NO_MATCH"
MATCH_OUTCOME_PENDING = "PENDING"


def other_party_role(party_role: str) -> str:
    if party_role == PARTY_ROLE_INITIATOR:
        return PARTY_ROLE_COUNTERPART
    return PARTY_ROLE_INITIATOR


def awaiting_status_for_missing(party_role: str) -> str:
    """Slot status while only the given party has yet to answer."""
    if party_role == PARTY_ROLE_INITIATOR:
        return SLOT_STATUS_AWAITING_INITIATOR
    return SLOT_STATUS_AWAITING_COUNTERPART
