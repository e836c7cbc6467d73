from __future__ import annotations

from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from pairplay.db.models.pairings import Pairing
from pairplay.game.constants import PAIRING_STATUS_ACCEPTED


class PairingsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, pairing_id: UUID) -> Pairing | None:
        return await session.get(Pairing, pairing_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, pairing_id: UUID) -> Pairing | None:
        stmt = select(Pairing).where(Pairing.id == pairing_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_invite_code_for_update(
        session: AsyncSession,
        invite_code: str,
    ) -> Pairing | None:
        stmt = select(Pairing).where(Pairing.invite_code == invite_code).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, pairing: Pairing) -> Pairing:
        session.add(pairing)
        await session.flush()
        return pairing

    @staticmethod
    async def list_accepted_for_user(
        session: AsyncSession,
        *,
        user_id: UUID,
    ) -> list[Pairing]:
        stmt = (
            select(Pairing)
            .where(
                Pairing.status == PAIRING_STATUS_ACCEPTED,
                or_(
                    Pairing.initiator_user_id == user_id,
                    Pairing.counterpart_user_id == user_id,
                ),
            )
            .order_by(Pairing.accepted_at.desc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get_accepted_between(
        session: AsyncSession,
        *,
        first_user_id: UUID,
        second_user_id: UUID,
    ) -> Pairing | None:
        stmt = (
            select(Pairing)
            .where(
                Pairing.status == PAIRING_STATUS_ACCEPTED,
                or_(
                    and_(
                        Pairing.initiator_user_id == first_user_id,
                        Pairing.counterpart_user_id == second_user_id,
                    ),
                    and_(
                        Pairing.initiator_user_id == second_user_id,
                        Pairing.counterpart_user_id == first_user_id,
                    ),
                ),
            )
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_member_ids(
        session: AsyncSession,
        *,
        pairing_id: UUID,
    ) -> tuple[UUID, UUID | None] | None:
        stmt = select(Pairing.initiator_user_id, Pairing.counterpart_user_id).where(
            Pairing.id == pairing_id
        )
        result = await session.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None
        return row.initiator_user_id, row.counterpart_user_id
