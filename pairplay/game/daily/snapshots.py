from __future__ import annotations

from pairplay.core.time import as_utc, as_utc_or_none
from pairplay.db.models.game_slots import GameSlot
from pairplay.game.daily.types import GameSlotSnapshot
from pairplay.game.questions.types import QuestionView


def build_slot_snapshot(slot: GameSlot, *, question: QuestionView | None = None) -> GameSlotSnapshot:
    return GameSlotSnapshot(
        slot_id=slot.id,
        pairing_id=slot.pairing_id,
        question_id=slot.question_id,
        game_date=slot.game_date,
        position=int(slot.position),
        status=slot.status,
        initiator_answer=slot.initiator_answer,
        counterpart_answer=slot.counterpart_answer,
        is_match=slot.is_match,
        expires_at=as_utc(slot.expires_at),
        initiator_answered_at=as_utc_or_none(slot.initiator_answered_at),
        counterpart_answered_at=as_utc_or_none(slot.counterpart_answered_at),
        completed_at=as_utc_or_none(slot.completed_at),
        question=question,
    )
