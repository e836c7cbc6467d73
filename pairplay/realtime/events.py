from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any
from uuid import UUID

from pairplay.game.constants import SLOT_STATUS_RANK
from pairplay.game.daily.types import GameSlotSnapshot

CHANGE_KIND_INSERT = "INSERT"
CHANGE_KIND_UPDATE = "UPDATE"
CHANGE_KINDS: frozenset[str] = frozenset({CHANGE_KIND_INSERT, CHANGE_KIND_UPDATE})


def _optional_int(value: Any) -> int | None:
    return None if value is None else int(value)


def _optional_bool(value: Any) -> bool | None:
    return None if value is None else bool(value)


def _optional_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


@dataclass(frozen=True, slots=True)
class SlotChange:
    slot_id: UUID
    pairing_id: UUID
    game_date: date
    position: int
    status: str
    initiator_answer: int | None
    counterpart_answer: int | None
    is_match: bool | None
    completed_at: datetime | None = None
    change_kind: str = field(default=CHANGE_KIND_UPDATE, compare=False)

    @classmethod
    def from_snapshot(
        cls,
        snapshot: GameSlotSnapshot,
        *,
        change_kind: str = CHANGE_KIND_UPDATE,
    ) -> SlotChange:
        return cls(
            slot_id=snapshot.slot_id,
            pairing_id=snapshot.pairing_id,
            game_date=snapshot.game_date,
            position=snapshot.position,
            status=snapshot.status,
            initiator_answer=snapshot.initiator_answer,
            counterpart_answer=snapshot.counterpart_answer,
            is_match=snapshot.is_match,
            completed_at=snapshot.completed_at,
            change_kind=change_kind,
        )

    @classmethod
    def from_message(cls, payload: dict[str, Any]) -> SlotChange:
        """Normalizes a raw feed record; raises ValueError on malformed input."""
        try:
            status = str(payload["status"])
            change_kind = str(payload.get("change_kind") or CHANGE_KIND_UPDATE).upper()
            change = cls(
                slot_id=UUID(str(payload["slot_id"])),
                pairing_id=UUID(str(payload["pairing_id"])),
                game_date=date.fromisoformat(str(payload["game_date"])),
                position=int(payload["position"]),
                status=status,
                initiator_answer=_optional_int(payload.get("initiator_answer")),
                counterpart_answer=_optional_int(payload.get("counterpart_answer")),
                is_match=_optional_bool(payload.get("is_match")),
                completed_at=_optional_datetime(payload.get("completed_at")),
                change_kind=change_kind,
            )
        except (KeyError, TypeError) as exc:
            raise ValueError(f"malformed slot change: {exc}") from exc
        if status not in SLOT_STATUS_RANK:
            raise ValueError(f"unknown slot status: {status}")
        if change_kind not in CHANGE_KINDS:
            raise ValueError(f"unknown change kind: {change_kind}")
        return change

    def to_message(self) -> dict[str, Any]:
        return {
            "slot_id": str(self.slot_id),
            "pairing_id": str(self.pairing_id),
            "game_date": self.game_date.isoformat(),
            "position": self.position,
            "status": self.status,
            "initiator_answer": self.initiator_answer,
            "counterpart_answer": self.counterpart_answer,
            "is_match": self.is_match,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "change_kind": self.change_kind,
        }

    @property
    def progress_key(self) -> tuple[int, int]:
        answers = int(self.initiator_answer is not None) + int(self.counterpart_answer is not None)
        return SLOT_STATUS_RANK[self.status], answers


class SlotStateView:
    """Local slot state that converges under repeated or reordered delivery."""

    def __init__(self) -> None:
        self._slots: dict[UUID, SlotChange] = {}

    def apply(self, change: SlotChange) -> bool:
        current = self._slots.get(change.slot_id)
        if current is not None and change.progress_key <= current.progress_key:
            return False
        self._slots[change.slot_id] = change
        return True

    def get(self, slot_id: UUID) -> SlotChange | None:
        return self._slots.get(slot_id)

    def slots_for(self, pairing_id: UUID, game_date: date) -> list[SlotChange]:
        return sorted(
            (
                change
                for change in self._slots.values()
                if change.pairing_id == pairing_id and change.game_date == game_date
            ),
            key=lambda change: change.position,
        )
