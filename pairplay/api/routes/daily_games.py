from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from pairplay.game.daily.facade import DailyGameSync
from pairplay.game.errors import DailyGameError

from .daily_games_helpers import (
    get_caller_user_id,
    get_daily_game_sync,
    slot_as_response,
    to_http_exception,
)
from .daily_games_models import (
    AnswerRequest,
    AnswerResponse,
    DailyGamesResponse,
    DailyProgressResponse,
    HistoryResponse,
    LifetimeProgressResponse,
    NextSlotResponse,
)

router = APIRouter(tags=["daily-games"])


@router.get("/pairings/{pairing_id}/games/{game_date}", response_model=DailyGamesResponse)
async def get_daily_games(
    pairing_id: UUID,
    game_date: date,
    user_id: UUID = Depends(get_caller_user_id),
    sync: DailyGameSync = Depends(get_daily_game_sync),
) -> DailyGamesResponse:
    try:
        slots = await sync.get_todays_games(
            user_id=user_id,
            pairing_id=pairing_id,
            game_date=game_date,
        )
    except DailyGameError as exc:
        raise to_http_exception(exc) from exc
    return DailyGamesResponse(
        pairing_id=pairing_id,
        game_date=game_date,
        slots=[slot_as_response(slot) for slot in slots],
    )


@router.get("/pairings/{pairing_id}/games/{game_date}/next", response_model=NextSlotResponse)
async def get_next_slot(
    pairing_id: UUID,
    game_date: date,
    user_id: UUID = Depends(get_caller_user_id),
    sync: DailyGameSync = Depends(get_daily_game_sync),
) -> NextSlotResponse:
    try:
        slot = await sync.get_next_slot(user_id=user_id, pairing_id=pairing_id, game_date=game_date)
    except DailyGameError as exc:
        raise to_http_exception(exc) from exc
    return NextSlotResponse(slot=slot_as_response(slot) if slot is not None else None)


@router.post("/slots/{slot_id}/answers", response_model=AnswerResponse)
async def submit_answer(
    slot_id: UUID,
    payload: AnswerRequest,
    user_id: UUID = Depends(get_caller_user_id),
    sync: DailyGameSync = Depends(get_daily_game_sync),
) -> AnswerResponse:
    try:
        result = await sync.submit_answer(
            user_id=user_id,
            slot_id=slot_id,
            selected_option=payload.selected_option,
        )
    except DailyGameError as exc:
        raise to_http_exception(exc) from exc
    return AnswerResponse(
        party_role=result.party_role,
        match_outcome=result.match_outcome,
        slot=slot_as_response(result.snapshot),
    )


@router.get("/pairings/{pairing_id}/progress/{game_date}", response_model=DailyProgressResponse)
async def get_daily_progress(
    pairing_id: UUID,
    game_date: date,
    user_id: UUID = Depends(get_caller_user_id),
    sync: DailyGameSync = Depends(get_daily_game_sync),
) -> DailyProgressResponse:
    try:
        progress = await sync.get_daily_progress(
            user_id=user_id,
            pairing_id=pairing_id,
            game_date=game_date,
        )
    except DailyGameError as exc:
        raise to_http_exception(exc) from exc
    return DailyProgressResponse(
        pairing_id=progress.pairing_id,
        game_date=progress.game_date,
        total_slots=progress.total_slots,
        answered_by_user=progress.answered_by_user,
        answered_by_counterpart=progress.answered_by_counterpart,
        completed_slots=progress.completed_slots,
        match_count=progress.match_count,
    )


@router.get("/pairings/{pairing_id}/stats", response_model=LifetimeProgressResponse)
async def get_lifetime_stats(
    pairing_id: UUID,
    user_id: UUID = Depends(get_caller_user_id),
    sync: DailyGameSync = Depends(get_daily_game_sync),
) -> LifetimeProgressResponse:
    try:
        progress = await sync.get_lifetime_progress(user_id=user_id, pairing_id=pairing_id)
    except DailyGameError as exc:
        raise to_http_exception(exc) from exc
    return LifetimeProgressResponse(
        pairing_id=progress.pairing_id,
        total_slots_completed=progress.total_slots_completed,
        total_matches=progress.total_matches,
        sync_score=progress.sync_score,
        last_completed_date=progress.last_completed_date,
    )


@router.get("/pairings/{pairing_id}/history", response_model=HistoryResponse)
async def get_history(
    pairing_id: UUID,
    limit: int = Query(default=50, ge=1, le=200),
    user_id: UUID = Depends(get_caller_user_id),
    sync: DailyGameSync = Depends(get_daily_game_sync),
) -> HistoryResponse:
    try:
        slots = await sync.list_history(user_id=user_id, pairing_id=pairing_id, limit=limit)
    except DailyGameError as exc:
        raise to_http_exception(exc) from exc
    return HistoryResponse(pairing_id=pairing_id, slots=[slot_as_response(slot) for slot in slots])
