from __future__ import annotations

from uuid import UUID

from fastapi import Header, HTTPException, Request

from pairplay.game.daily.facade import DailyGameSync
from pairplay.game.daily.types import GameSlotSnapshot
from pairplay.game.errors import (
    BackendUnavailableError,
    DailyGameError,
    DuplicateAnswerError,
    ExpiredError,
    InvalidAnswerOptionError,
    InvalidPairingPreferencesError,
    NotFoundError,
    PairingAccessError,
)
from pairplay.game.pairings.types import PairingSnapshot

from .daily_games_models import GameSlotResponse, PairingResponse, SlotQuestionResponse


def get_daily_game_sync(request: Request) -> DailyGameSync:
    return request.app.state.daily_game_sync


def parse_caller_user_id(raw_value: str | None) -> UUID | None:
    if not raw_value:
        return None
    try:
        return UUID(raw_value)
    except ValueError:
        return None


def get_caller_user_id(x_user_id: str | None = Header(default=None, alias="X-User-Id")) -> UUID:
    if not x_user_id:
        raise HTTPException(status_code=401, detail={"code": "E_CALLER_MISSING"})
    user_id = parse_caller_user_id(x_user_id)
    if user_id is None:
        raise HTTPException(status_code=401, detail={"code": "E_CALLER_INVALID"})
    return user_id


def to_http_exception(exc: DailyGameError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail={"code": "E_NOT_AVAILABLE"})
    if isinstance(exc, PairingAccessError):
        return HTTPException(status_code=403, detail={"code": "E_PAIRING_ACCESS"})
    if isinstance(exc, DuplicateAnswerError):
        return HTTPException(status_code=409, detail={"code": "E_ALREADY_ANSWERED"})
    if isinstance(exc, ExpiredError):
        return HTTPException(status_code=410, detail={"code": "E_NO_LONGER_AVAILABLE"})
    if isinstance(exc, (InvalidAnswerOptionError, InvalidPairingPreferencesError)):
        return HTTPException(status_code=422, detail={"code": "E_INVALID_INPUT", "reason": str(exc)})
    if isinstance(exc, BackendUnavailableError):
        return HTTPException(
            status_code=503,
            detail={"code": "E_BACKEND_UNAVAILABLE", "retryable": True},
        )
    return HTTPException(status_code=409, detail={"code": "E_CONFLICT", "reason": type(exc).__name__})


def slot_as_response(snapshot: GameSlotSnapshot) -> GameSlotResponse:
    question = None
    if snapshot.question is not None:
        question = SlotQuestionResponse(
            question_id=snapshot.question.question_id,
            category=snapshot.question.category,
            text=snapshot.question.text,
            options=list(snapshot.question.options),
        )
    return GameSlotResponse(
        slot_id=snapshot.slot_id,
        pairing_id=snapshot.pairing_id,
        game_date=snapshot.game_date,
        position=snapshot.position,
        status=snapshot.status,
        initiator_answer=snapshot.initiator_answer,
        counterpart_answer=snapshot.counterpart_answer,
        is_match=snapshot.is_match,
        expires_at=snapshot.expires_at,
        completed_at=snapshot.completed_at,
        question=question,
    )


def pairing_as_response(snapshot: PairingSnapshot) -> PairingResponse:
    return PairingResponse(
        pairing_id=snapshot.pairing_id,
        initiator_user_id=snapshot.initiator_user_id,
        counterpart_user_id=snapshot.counterpart_user_id,
        relationship_kind=snapshot.relationship_kind,
        status=snapshot.status,
        daily_quota=snapshot.daily_quota,
        allowed_categories=list(snapshot.allowed_categories),
        nickname=snapshot.nickname,
        invite_code=snapshot.invite_code,
        invite_expires_at=snapshot.invite_expires_at,
        accepted_at=snapshot.accepted_at,
    )
