from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pairplay.db.models.pairing_stats import PairingStats


class PairingStatsRepo:
    @staticmethod
    async def get_by_pairing_id(session: AsyncSession, pairing_id: UUID) -> PairingStats | None:
        return await session.get(PairingStats, pairing_id, populate_existing=True)

    @staticmethod
    async def replace(
        session: AsyncSession,
        *,
        pairing_id: UUID,
        total_slots_completed: int,
        total_matches: int,
        sync_score: int,
        last_completed_date: date | None,
        now_utc: datetime,
    ) -> PairingStats:
        stats = await PairingStatsRepo.get_by_pairing_id(session, pairing_id)
        if stats is None:
            try:
                async with session.begin_nested():
                    stats = PairingStats(
                        pairing_id=pairing_id,
                        total_slots_completed=total_slots_completed,
                        total_matches=total_matches,
                        sync_score=sync_score,
                        last_completed_date=last_completed_date,
                        updated_at=now_utc,
                    )
                    session.add(stats)
                    await session.flush()
                return stats
            except IntegrityError:
                stats = await PairingStatsRepo.get_by_pairing_id(session, pairing_id)
                if stats is None:
                    raise

        stats.total_slots_completed = total_slots_completed
        stats.total_matches = total_matches
        stats.sync_score = sync_score
        stats.last_completed_date = last_completed_date
        stats.updated_at = now_utc
        await session.flush()
        return stats
