from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import DateTime, case, false, func, insert, literal, null, select, true, update
from sqlalchemy.ext.asyncio import AsyncSession

from pairplay.db.models.game_slots import GameSlot
from pairplay.db.models.questions import Question
from pairplay.game.constants import (
    PARTY_ROLE_INITIATOR,
    SLOT_OPEN_STATUSES,
    SLOT_STATUS_COMPLETED,
    SLOT_STATUS_EXPIRED,
    awaiting_status_for_missing,
    other_party_role,
)


def _answer_columns(party_role: str):
    if party_role == PARTY_ROLE_INITIATOR:
        return GameSlot.initiator_answer, GameSlot.counterpart_answer
    return GameSlot.counterpart_answer, GameSlot.initiator_answer


def _answered_at_key(party_role: str) -> str:
    if party_role == PARTY_ROLE_INITIATOR:
        return "initiator_answered_at"
    return "counterpart_answered_at"


class GameSlotsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, slot_id: UUID) -> GameSlot | None:
        stmt = (
            select(GameSlot)
            .where(GameSlot.id == slot_id)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_with_question(
        session: AsyncSession,
        *,
        slot_id: UUID,
    ) -> tuple[GameSlot, Question] | None:
        stmt = (
            select(GameSlot, Question)
            .join(Question, Question.id == GameSlot.question_id)
            .where(GameSlot.id == slot_id)
        )
        result = await session.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None
        return row[0], row[1]

    @staticmethod
    async def list_for_pairing_date(
        session: AsyncSession,
        *,
        pairing_id: UUID,
        game_date: date,
    ) -> list[GameSlot]:
        stmt = (
            select(GameSlot)
            .where(
                GameSlot.pairing_id == pairing_id,
                GameSlot.game_date == game_date,
            )
            .order_by(GameSlot.position.asc())
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def insert_many(session: AsyncSession, *, values: Sequence[dict[str, object]]) -> None:
        """Single multi-row INSERT; the unique constraint fails it as a whole."""
        if not values:
            return
        await session.execute(insert(GameSlot).values(list(values)))

    @staticmethod
    async def claim_answer(
        session: AsyncSession,
        *,
        slot_id: UUID,
        party_role: str,
        selected_option: int,
        now_utc: datetime,
    ) -> GameSlot | None:
        own_answer, other_answer = _answer_columns(party_role)
        stamped_now = literal(now_utc, type_=DateTime(timezone=True))
        stmt = (
            update(GameSlot)
            .where(
                GameSlot.id == slot_id,
                own_answer.is_(None),
                GameSlot.status.in_(tuple(SLOT_OPEN_STATUSES)),
                GameSlot.expires_at > now_utc,
            )
            .values(
                {
                    own_answer.key: selected_option,
                    _answered_at_key(party_role): now_utc,
                    "status": case(
                        (
                            other_answer.is_(None),
                            awaiting_status_for_missing(other_party_role(party_role)),
                        ),
                        else_=SLOT_STATUS_COMPLETED,
                    ),
                    "is_match": case(
                        (other_answer.is_(None), null()),
                        (other_answer == selected_option, true()),
                        else_=false(),
                    ),
                    "completed_at": case(
                        (other_answer.is_(None), null()),
                        else_=stamped_now,
                    ),
                    "updated_at": now_utc,
                }
            )
            .returning(GameSlot)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_due_for_expiry_for_update(
        session: AsyncSession,
        *,
        now_utc: datetime,
        limit: int,
    ) -> list[GameSlot]:
        resolved_limit = max(1, int(limit))
        stmt = (
            select(GameSlot)
            .where(
                GameSlot.status.in_(tuple(SLOT_OPEN_STATUSES)),
                GameSlot.expires_at <= now_utc,
            )
            .order_by(GameSlot.expires_at.asc())
            .limit(resolved_limit)
            .with_for_update(skip_locked=True)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def mark_expired(
        session: AsyncSession,
        *,
        slot_ids: Sequence[UUID],
        now_utc: datetime,
    ) -> list[GameSlot]:
        if not slot_ids:
            return []
        stmt = (
            update(GameSlot)
            .where(
                GameSlot.id.in_(tuple(slot_ids)),
                GameSlot.status.in_(tuple(SLOT_OPEN_STATUSES)),
            )
            .values(status=SLOT_STATUS_EXPIRED, updated_at=now_utc)
            .returning(GameSlot)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_seen_question_ids(
        session: AsyncSession,
        *,
        pairing_id: UUID,
        since_date: date,
        before_date: date,
    ) -> set[str]:
        stmt = select(GameSlot.question_id).where(
            GameSlot.pairing_id == pairing_id,
            GameSlot.game_date >= since_date,
            GameSlot.game_date < before_date,
        )
        result = await session.execute(stmt)
        return set(result.scalars().all())

    @staticmethod
    async def list_completed_history(
        session: AsyncSession,
        *,
        pairing_id: UUID,
        limit: int,
    ) -> list[GameSlot]:
        resolved_limit = max(1, int(limit))
        stmt = (
            select(GameSlot)
            .where(
                GameSlot.pairing_id == pairing_id,
                GameSlot.status == SLOT_STATUS_COMPLETED,
            )
            .order_by(GameSlot.completed_at.desc(), GameSlot.position.asc())
            .limit(resolved_limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def aggregate_completed(
        session: AsyncSession,
        *,
        pairing_id: UUID,
    ) -> tuple[int, int, date | None]:
        stmt = select(
            func.count(GameSlot.id),
            func.coalesce(func.sum(case((GameSlot.is_match.is_(True), 1), else_=0)), 0),
            func.max(GameSlot.game_date),
        ).where(
            GameSlot.pairing_id == pairing_id,
            GameSlot.status == SLOT_STATUS_COMPLETED,
        )
        result = await session.execute(stmt)
        completed, matches, last_date = result.one()
        return int(completed or 0), int(matches or 0), last_date
