from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pairplay.db.models.questions import Question
from pairplay.game.constants import AUDIENCE_COUPLES, AUDIENCE_FAMILY


def _audience_column(audience_kind: str):
    if audience_kind == AUDIENCE_COUPLES:
        return Question.for_couples
    if audience_kind == AUDIENCE_FAMILY:
        return Question.for_family
    return Question.for_friends


class QuestionsRepo:
    @staticmethod
    async def list_eligible(
        session: AsyncSession,
        *,
        categories: Sequence[str],
        audience_kind: str,
    ) -> list[Question]:
        if not categories:
            return []
        stmt = (
            select(Question)
            .where(
                Question.is_active.is_(True),
                Question.category.in_(tuple(categories)),
                _audience_column(audience_kind).is_(True),
            )
            .order_by(Question.id.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_by_ids(
        session: AsyncSession,
        *,
        question_ids: Sequence[str],
    ) -> dict[str, Question]:
        if not question_ids:
            return {}
        stmt = select(Question).where(Question.id.in_(tuple(set(question_ids))))
        result = await session.execute(stmt)
        return {question.id: question for question in result.scalars().all()}
