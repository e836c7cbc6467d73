from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from pairplay.db.models.game_slots import GameSlot
from pairplay.db.repo.game_slots_repo import GameSlotsRepo
from pairplay.db.repo.pairing_stats_repo import PairingStatsRepo
from pairplay.db.repo.pairings_repo import PairingsRepo
from pairplay.game.constants import PARTY_ROLE_INITIATOR, SLOT_STATUS_COMPLETED
from pairplay.game.daily.types import DailyProgress, LifetimeProgress
from pairplay.game.errors import PairingNotFoundError
from pairplay.game.pairings.service import resolve_party_role

logger = structlog.get_logger(__name__)


def compute_sync_score(*, total_matches: int, total_completed: int) -> int:
    """Percent of completed slots that matched, rounded half up."""
    if total_completed <= 0:
        return 0
    return (total_matches * 200 + total_completed) // (total_completed * 2)


def summarize_daily_progress(
    slots: Sequence[GameSlot],
    *,
    pairing_id: UUID,
    game_date: date,
    party_role: str,
) -> DailyProgress:
    answered_by_initiator = sum(1 for slot in slots if slot.initiator_answer is not None)
    answered_by_counterpart = sum(1 for slot in slots if slot.counterpart_answer is not None)
    if party_role == PARTY_ROLE_INITIATOR:
        own_count, other_count = answered_by_initiator, answered_by_counterpart
    else:
        own_count, other_count = answered_by_counterpart, answered_by_initiator
    return DailyProgress(
        pairing_id=pairing_id,
        game_date=game_date,
        total_slots=len(slots),
        answered_by_user=own_count,
        answered_by_counterpart=other_count,
        completed_slots=sum(1 for slot in slots if slot.status == SLOT_STATUS_COMPLETED),
        match_count=sum(1 for slot in slots if slot.is_match is True),
    )


async def get_daily_progress(
    session: AsyncSession,
    *,
    pairing_id: UUID,
    user_id: UUID,
    game_date: date,
) -> DailyProgress:
    pairing = await PairingsRepo.get_by_id(session, pairing_id)
    if pairing is None:
        raise PairingNotFoundError
    party_role = resolve_party_role(pairing, user_id)
    slots = await GameSlotsRepo.list_for_pairing_date(
        session,
        pairing_id=pairing_id,
        game_date=game_date,
    )
    return summarize_daily_progress(
        slots,
        pairing_id=pairing_id,
        game_date=game_date,
        party_role=party_role,
    )


async def _compute_lifetime_progress(
    session: AsyncSession,
    *,
    pairing_id: UUID,
) -> LifetimeProgress:
    total_completed, total_matches, last_completed_date = await GameSlotsRepo.aggregate_completed(
        session,
        pairing_id=pairing_id,
    )
    return LifetimeProgress(
        pairing_id=pairing_id,
        total_slots_completed=total_completed,
        total_matches=total_matches,
        sync_score=compute_sync_score(
            total_matches=total_matches,
            total_completed=total_completed,
        ),
        last_completed_date=last_completed_date,
    )


async def refresh_pairing_stats(
    session: AsyncSession,
    *,
    pairing_id: UUID,
    now_utc: datetime,
) -> LifetimeProgress:
    progress = await _compute_lifetime_progress(session, pairing_id=pairing_id)
    await PairingStatsRepo.replace(
        session,
        pairing_id=pairing_id,
        total_slots_completed=progress.total_slots_completed,
        total_matches=progress.total_matches,
        sync_score=progress.sync_score,
        last_completed_date=progress.last_completed_date,
        now_utc=now_utc,
    )
    logger.info(
        "pairing_stats_refreshed",
        pairing_id=str(pairing_id),
        total_slots_completed=progress.total_slots_completed,
        sync_score=progress.sync_score,
    )
    return progress


async def get_lifetime_progress(
    session: AsyncSession,
    *,
    pairing_id: UUID,
) -> LifetimeProgress:
    stats = await PairingStatsRepo.get_by_pairing_id(session, pairing_id)
    if stats is None:
        return await _compute_lifetime_progress(session, pairing_id=pairing_id)
    return LifetimeProgress(
        pairing_id=pairing_id,
        total_slots_completed=int(stats.total_slots_completed),
        total_matches=int(stats.total_matches),
        sync_score=int(stats.sync_score),
        last_completed_date=stats.last_completed_date,
    )
