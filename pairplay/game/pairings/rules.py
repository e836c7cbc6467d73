from __future__ import annotations

from collections.abc import Sequence

from pairplay.game.constants import (
    DAILY_QUOTA_MAX,
    DAILY_QUOTA_MIN,
    QUESTION_CATEGORIES,
    RELATIONSHIP_ROMANTIC,
    ROMANTIC_ONLY_CATEGORIES,
)
from pairplay.game.errors import InvalidPairingPreferencesError


def validate_daily_quota(daily_quota: int) -> int:
    resolved = int(daily_quota)
    if resolved < DAILY_QUOTA_MIN or resolved > DAILY_QUOTA_MAX:
        raise InvalidPairingPreferencesError(
            f"daily_quota must be between {DAILY_QUOTA_MIN} and {DAILY_QUOTA_MAX}"
        )
    return resolved


def validate_allowed_categories(
    allowed_categories: Sequence[str],
    *,
    relationship_kind: str,
) -> tuple[str, ...]:
    """Returns the de-duplicated allow-list in the caller's order."""
    resolved: list[str] = []
    for category in allowed_categories:
        normalized = category.strip().lower()
        if normalized not in QUESTION_CATEGORIES:
            raise InvalidPairingPreferencesError(f"unknown category: {category}")
        if normalized in ROMANTIC_ONLY_CATEGORIES and relationship_kind != RELATIONSHIP_ROMANTIC:
            raise InvalidPairingPreferencesError(
                f"category {normalized} is reserved for romantic pairings"
            )
        if normalized not in resolved:
            resolved.append(normalized)
    if not resolved:
        raise InvalidPairingPreferencesError("at least one category is required")
    return tuple(resolved)
