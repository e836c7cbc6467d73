from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from pairplay.game.daily.facade import DailyGameSync
from pairplay.game.errors import DailyGameError

from .daily_games_helpers import (
    get_caller_user_id,
    get_daily_game_sync,
    pairing_as_response,
    to_http_exception,
)
from .daily_games_models import (
    AcceptInviteRequest,
    CreateInviteRequest,
    PairingResponse,
    PreferencesRequest,
)

router = APIRouter(tags=["pairings"])


@router.post("/pairings/invites", response_model=PairingResponse, status_code=201)
async def create_invite(
    payload: CreateInviteRequest,
    user_id: UUID = Depends(get_caller_user_id),
    sync: DailyGameSync = Depends(get_daily_game_sync),
) -> PairingResponse:
    try:
        result = await sync.create_invite(
            initiator_user_id=user_id,
            relationship_kind=payload.relationship_kind.strip().upper(),
            nickname=payload.nickname,
        )
    except DailyGameError as exc:
        raise to_http_exception(exc) from exc
    return pairing_as_response(result.snapshot)


@router.post("/pairings/invites/accept", response_model=PairingResponse)
async def accept_invite(
    payload: AcceptInviteRequest,
    user_id: UUID = Depends(get_caller_user_id),
    sync: DailyGameSync = Depends(get_daily_game_sync),
) -> PairingResponse:
    try:
        snapshot = await sync.accept_invite(user_id=user_id, invite_code=payload.invite_code)
    except DailyGameError as exc:
        raise to_http_exception(exc) from exc
    return pairing_as_response(snapshot)


@router.post("/pairings/{pairing_id}/decline", response_model=PairingResponse)
async def decline_invite(
    pairing_id: UUID,
    user_id: UUID = Depends(get_caller_user_id),
    sync: DailyGameSync = Depends(get_daily_game_sync),
) -> PairingResponse:
    try:
        snapshot = await sync.decline_invite(user_id=user_id, pairing_id=pairing_id)
    except DailyGameError as exc:
        raise to_http_exception(exc) from exc
    return pairing_as_response(snapshot)


@router.patch("/pairings/{pairing_id}/preferences", response_model=PairingResponse)
async def update_preferences(
    pairing_id: UUID,
    payload: PreferencesRequest,
    user_id: UUID = Depends(get_caller_user_id),
    sync: DailyGameSync = Depends(get_daily_game_sync),
) -> PairingResponse:
    try:
        snapshot = await sync.update_preferences(
            user_id=user_id,
            pairing_id=pairing_id,
            daily_quota=payload.daily_quota,
            allowed_categories=payload.allowed_categories,
        )
    except DailyGameError as exc:
        raise to_http_exception(exc) from exc
    return pairing_as_response(snapshot)
