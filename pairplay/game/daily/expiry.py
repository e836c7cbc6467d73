from __future__ import annotations

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from pairplay.db.repo.game_slots_repo import GameSlotsRepo
from pairplay.game.daily.snapshots import build_slot_snapshot
from pairplay.game.daily.types import GameSlotSnapshot


async def expire_overdue_slots(
    session: AsyncSession,
    *,
    now_utc: datetime,
    batch_size: int,
) -> list[GameSlotSnapshot]:
    due_slots = await GameSlotsRepo.list_due_for_expiry_for_update(
        session,
        now_utc=now_utc,
        limit=batch_size,
    )
    expired = await GameSlotsRepo.mark_expired(
        session,
        slot_ids=[slot.id for slot in due_slots],
        now_utc=now_utc,
    )
    return [build_slot_snapshot(slot) for slot in sorted(expired, key=lambda slot: slot.position)]
