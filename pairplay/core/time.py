from __future__ import annotations

from datetime import date, datetime, timezone

UTC = timezone.utc


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attaches UTC to naive values read back from backends that drop the offset."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def as_utc_or_none(value: datetime | None) -> datetime | None:
    return as_utc(value) if value is not None else None


def parse_game_date(raw_value: str) -> date:
    """Game dates are opaque client-local keys in ISO format (YYYY-MM-DD)."""
    return date.fromisoformat(raw_value)
