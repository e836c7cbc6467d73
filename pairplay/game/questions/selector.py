from __future__ import annotations

import random
from collections.abc import Collection, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from pairplay.db.models.questions import Question
from pairplay.db.repo.questions_repo import QuestionsRepo
from pairplay.game.questions.seed import stable_seed
from pairplay.game.questions.types import QuestionView


def to_question_view(record: Question) -> QuestionView:
    return QuestionView(
        question_id=record.id,
        category=record.category,
        text=record.text,
        options=tuple(str(option) for option in record.options),
    )


def select_daily_questions(
    candidates: Sequence[QuestionView],
    *,
    quota: int,
    exclude_question_ids: Collection[str],
    selection_seed: str,
) -> list[QuestionView]:
    """Picks up to ``quota`` distinct questions, unseen ones first.

    The same seed over the same candidate pool always yields the same list, so
    two clients generating the same pairing day agree on the set.
    """
    if quota <= 0 or not candidates:
        return []

    by_id: dict[str, QuestionView] = {}
    for candidate in candidates:
        by_id.setdefault(candidate.question_id, candidate)
    ordered_ids = sorted(by_id)

    unseen = [question_id for question_id in ordered_ids if question_id not in exclude_question_ids]
    seen = [question_id for question_id in ordered_ids if question_id in exclude_question_ids]

    rng = random.Random(stable_seed(selection_seed))
    rng.shuffle(unseen)
    rng.shuffle(seen)

    picked = (unseen + seen)[:quota]
    return [by_id[question_id] for question_id in picked]


async def load_daily_questions(
    session: AsyncSession,
    *,
    allowed_categories: Sequence[str],
    audience_kind: str,
    quota: int,
    exclude_question_ids: Collection[str],
    selection_seed: str,
) -> list[QuestionView]:
    records = await QuestionsRepo.list_eligible(
        session,
        categories=allowed_categories,
        audience_kind=audience_kind,
    )
    return select_daily_questions(
        [to_question_view(record) for record in records],
        quota=quota,
        exclude_question_ids=exclude_question_ids,
        selection_seed=selection_seed,
    )
