from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field


class SlotQuestionResponse(BaseModel):
    question_id: str
    category: str
    text: str
    options: list[str]


class GameSlotResponse(BaseModel):
    slot_id: UUID
    pairing_id: UUID
    game_date: date
    position: int = Field(ge=1)
    status: str
    initiator_answer: int | None = None
    counterpart_answer: int | None = None
    is_match: bool | None = None
    expires_at: datetime
    completed_at: datetime | None = None
    question: SlotQuestionResponse | None = None


class DailyGamesResponse(BaseModel):
    pairing_id: UUID
    game_date: date
    slots: list[GameSlotResponse]


class NextSlotResponse(BaseModel):
    slot: GameSlotResponse | None = None


class AnswerRequest(BaseModel):
    selected_option: int = Field(ge=0, le=32)


class AnswerResponse(BaseModel):
    party_role: str
    match_outcome: str
    slot: GameSlotResponse


class DailyProgressResponse(BaseModel):
    pairing_id: UUID
    game_date: date
    total_slots: int = Field(ge=0)
    answered_by_user: int = Field(ge=0)
    answered_by_counterpart: int = Field(ge=0)
    completed_slots: int = Field(ge=0)
    match_count: int = Field(ge=0)


class LifetimeProgressResponse(BaseModel):
    pairing_id: UUID
    total_slots_completed: int = Field(ge=0)
    total_matches: int = Field(ge=0)
    sync_score: int = Field(ge=0, le=100)
    last_completed_date: date | None = None


class HistoryResponse(BaseModel):
    pairing_id: UUID
    slots: list[GameSlotResponse]


class CreateInviteRequest(BaseModel):
    relationship_kind: str = Field(min_length=1, max_length=16)
    nickname: str | None = Field(default=None, max_length=64)


class AcceptInviteRequest(BaseModel):
    invite_code: str = Field(min_length=4, max_length=32)


class PreferencesRequest(BaseModel):
    daily_quota: int | None = Field(default=None, ge=1, le=50)
    allowed_categories: list[str] | None = Field(default=None, min_length=1, max_length=16)


class PairingResponse(BaseModel):
    pairing_id: UUID
    initiator_user_id: UUID
    counterpart_user_id: UUID | None = None
    relationship_kind: str
    status: str
    daily_quota: int
    allowed_categories: list[str]
    nickname: str | None = None
    invite_code: str | None = None
    invite_expires_at: datetime | None = None
    accepted_at: datetime | None = None
