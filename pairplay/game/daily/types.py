from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from pairplay.game.constants import MATCH_OUTCOME_PENDING
from pairplay.game.questions.types import QuestionView


@dataclass(slots=True)
class GameSlotSnapshot:
    slot_id: UUID
    pairing_id: UUID
    question_id: str
    game_date: date
    position: int
    status: str
    initiator_answer: int | None
    counterpart_answer: int | None
    is_match: bool | None
    expires_at: datetime
    initiator_answered_at: datetime | None = None
    counterpart_answered_at: datetime | None = None
    completed_at: datetime | None = None
    question: QuestionView | None = None


@dataclass(slots=True)
class AnswerSubmissionResult:
    snapshot: GameSlotSnapshot
    party_role: str
    match_outcome: str

    @property
    def completed_now(self) -> bool:
        return self.match_outcome != MATCH_OUTCOME_PENDING


@dataclass(slots=True)
class DailyProgress:
    pairing_id: UUID
    game_date: date
    total_slots: int
    answered_by_user: int
    answered_by_counterpart: int
    completed_slots: int
    match_count: int


@dataclass(slots=True)
class LifetimeProgress:
    pairing_id: UUID
    total_slots_completed: int
    total_matches: int
    sync_score: int
    last_completed_date: date | None = None


@dataclass(slots=True)
class DailyGameSet:
    pairing_id: UUID
    game_date: date
    slots: list[GameSlotSnapshot]
    created_now: bool = False
