from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pairplay.db.repo.pairings_repo import PairingsRepo
from pairplay.realtime.propagator import PairingMembersLookup


def make_pairing_members_lookup(
    session_factory: async_sessionmaker[AsyncSession],
) -> PairingMembersLookup:
    async def lookup(pairing_id: UUID) -> frozenset[UUID] | None:
        async with session_factory() as session:
            member_ids = await PairingsRepo.get_member_ids(session, pairing_id=pairing_id)
        if member_ids is None:
            return None
        return frozenset(member_id for member_id in member_ids if member_id is not None)

    return lookup
