from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime, timedelta
from uuid import UUID, uuid4

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pairplay.core.config import get_settings
from pairplay.core.time import as_utc
from pairplay.db.models.game_slots import GameSlot
from pairplay.db.repo.game_slots_repo import GameSlotsRepo
from pairplay.db.repo.pairings_repo import PairingsRepo
from pairplay.db.repo.questions_repo import QuestionsRepo
from pairplay.game.constants import (
    PAIRING_STATUS_ACCEPTED,
    PARTY_ROLE_INITIATOR,
    SLOT_OPEN_STATUSES,
    SLOT_STATUS_AWAITING_BOTH,
    audience_for_relationship,
)
from pairplay.game.daily.snapshots import build_slot_snapshot
from pairplay.game.daily.types import DailyGameSet, GameSlotSnapshot
from pairplay.game.errors import PairingNotActiveError, PairingNotFoundError, SlotSetConflictError
from pairplay.game.questions.seed import daily_selection_seed
from pairplay.game.questions.selector import load_daily_questions, to_question_view
from pairplay.game.questions.types import QuestionView

logger = structlog.get_logger(__name__)


async def _attach_questions(
    session: AsyncSession,
    slots: Sequence[GameSlot],
    *,
    known: dict[str, QuestionView] | None = None,
) -> list[GameSlotSnapshot]:
    views = dict(known or {})
    missing_ids = [slot.question_id for slot in slots if slot.question_id not in views]
    if missing_ids:
        records = await QuestionsRepo.list_by_ids(session, question_ids=missing_ids)
        views.update({question_id: to_question_view(record) for question_id, record in records.items()})
    return [build_slot_snapshot(slot, question=views.get(slot.question_id)) for slot in slots]


async def _insert_slot_set(
    session: AsyncSession,
    *,
    values: Sequence[dict[str, object]],
) -> None:
    try:
        async with session.begin_nested():
            await GameSlotsRepo.insert_many(session, values=values)
    except IntegrityError as exc:
        raise SlotSetConflictError from exc


async def get_or_create_todays_games(
    session: AsyncSession,
    *,
    pairing_id: UUID,
    game_date: date,
    now_utc: datetime,
) -> list[GameSlotSnapshot]:
    game_set = await ensure_daily_game_set(
        session,
        pairing_id=pairing_id,
        game_date=game_date,
        now_utc=now_utc,
    )
    return game_set.slots


async def ensure_daily_game_set(
    session: AsyncSession,
    *,
    pairing_id: UUID,
    game_date: date,
    now_utc: datetime,
) -> DailyGameSet:
    """Reads the day's slot set, creating it once if the day has none yet."""
    existing = await GameSlotsRepo.list_for_pairing_date(
        session,
        pairing_id=pairing_id,
        game_date=game_date,
    )
    if existing:
        return DailyGameSet(
            pairing_id=pairing_id,
            game_date=game_date,
            slots=await _attach_questions(session, existing),
        )

    pairing = await PairingsRepo.get_by_id(session, pairing_id)
    if pairing is None:
        raise PairingNotFoundError
    if pairing.status != PAIRING_STATUS_ACCEPTED:
        raise PairingNotActiveError

    settings = get_settings()
    seen_question_ids = await GameSlotsRepo.list_seen_question_ids(
        session,
        pairing_id=pairing_id,
        since_date=game_date - timedelta(days=settings.question_novelty_window_days),
        before_date=game_date,
    )
    questions = await load_daily_questions(
        session,
        allowed_categories=tuple(pairing.allowed_categories or ()),
        audience_kind=audience_for_relationship(pairing.relationship_kind),
        quota=int(pairing.daily_quota),
        exclude_question_ids=seen_question_ids,
        selection_seed=daily_selection_seed(pairing_id=pairing_id, game_date=game_date),
    )
    if not questions:
        logger.warning(
            "daily_games_question_pool_empty",
            pairing_id=str(pairing_id),
            game_date=game_date.isoformat(),
        )
        return DailyGameSet(pairing_id=pairing_id, game_date=game_date, slots=[])

    expires_at = now_utc + timedelta(seconds=settings.game_slot_ttl_seconds)
    values = [
        {
            "id": uuid4(),
            "pairing_id": pairing_id,
            "question_id": question.question_id,
            "game_date": game_date,
            "position": position,
            "status": SLOT_STATUS_AWAITING_BOTH,
            "initiator_answer": None,
            "counterpart_answer": None,
            "is_match": None,
            "created_at": now_utc,
            "updated_at": now_utc,
            "completed_at": None,
            "expires_at": expires_at,
        }
        for position, question in enumerate(questions, start=1)
    ]
    known_views = {question.question_id: question for question in questions}

    try:
        await _insert_slot_set(session, values=values)
    except SlotSetConflictError:
        winner_slots = await GameSlotsRepo.list_for_pairing_date(
            session,
            pairing_id=pairing_id,
            game_date=game_date,
        )
        if not winner_slots:
            raise
        logger.info(
            "daily_games_creation_race_lost",
            pairing_id=str(pairing_id),
            game_date=game_date.isoformat(),
        )
        return DailyGameSet(
            pairing_id=pairing_id,
            game_date=game_date,
            slots=await _attach_questions(session, winner_slots),
        )

    created = await GameSlotsRepo.list_for_pairing_date(
        session,
        pairing_id=pairing_id,
        game_date=game_date,
    )
    logger.info(
        "daily_games_created",
        pairing_id=str(pairing_id),
        game_date=game_date.isoformat(),
        slots_total=len(created),
        quota=int(pairing.daily_quota),
    )
    return DailyGameSet(
        pairing_id=pairing_id,
        game_date=game_date,
        slots=await _attach_questions(session, created, known=known_views),
        created_now=True,
    )


async def get_next_unanswered_slot(
    session: AsyncSession,
    *,
    pairing_id: UUID,
    game_date: date,
    party_role: str,
    now_utc: datetime | None = None,
) -> GameSlotSnapshot | None:
    slots = await GameSlotsRepo.list_for_pairing_date(
        session,
        pairing_id=pairing_id,
        game_date=game_date,
    )
    for slot in slots:
        if slot.status not in SLOT_OPEN_STATUSES:
            continue
        if now_utc is not None and as_utc(slot.expires_at) <= now_utc:
            continue
        own_answer = (
            slot.initiator_answer if party_role == PARTY_ROLE_INITIATOR else slot.counterpart_answer
        )
        if own_answer is None:
            snapshots = await _attach_questions(session, [slot])
            return snapshots[0]
    return None


async def list_completed_history(
    session: AsyncSession,
    *,
    pairing_id: UUID,
    limit: int = 50,
) -> list[GameSlotSnapshot]:
    slots = await GameSlotsRepo.list_completed_history(
        session,
        pairing_id=pairing_id,
        limit=limit,
    )
    return await _attach_questions(session, slots)
