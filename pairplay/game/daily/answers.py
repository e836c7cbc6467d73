from __future__ import annotations

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from pairplay.core.time import as_utc
from pairplay.db.repo.game_slots_repo import GameSlotsRepo
from pairplay.db.repo.pairings_repo import PairingsRepo
from pairplay.game.constants import (
    MATCH_OUTCOME_MATCH,
    MATCH_OUTCOME_NO_MATCH,
    MATCH_OUTCOME_PENDING,
    PARTY_ROLE_INITIATOR,
    PARTY_ROLES,
    SLOT_STATUS_COMPLETED,
    SLOT_STATUS_EXPIRED,
)
from pairplay.game.daily.snapshots import build_slot_snapshot
from pairplay.game.daily.types import AnswerSubmissionResult
from pairplay.game.errors import (
    DuplicateAnswerError,
    GameSlotExpiredError,
    GameSlotNotFoundError,
    InvalidAnswerOptionError,
)
from pairplay.game.pairings.service import resolve_party_role
from pairplay.game.questions.selector import to_question_view

logger = structlog.get_logger(__name__)


def _match_outcome(is_match: bool | None) -> str:
    if is_match is None:
        return MATCH_OUTCOME_PENDING
    return MATCH_OUTCOME_MATCH if is_match else MATCH_OUTCOME_NO_MATCH


async def resolve_slot_party_role(
    session: AsyncSession,
    *,
    slot_id: UUID,
    user_id: UUID,
) -> tuple[UUID, str]:
    slot = await GameSlotsRepo.get_by_id(session, slot_id)
    if slot is None:
        raise GameSlotNotFoundError
    pairing = await PairingsRepo.get_by_id(session, slot.pairing_id)
    if pairing is None:
        raise GameSlotNotFoundError
    return slot.pairing_id, resolve_party_role(pairing, user_id)


async def _raise_rejection(
    session: AsyncSession,
    *,
    slot_id: UUID,
    party_role: str,
    now_utc: datetime,
) -> None:
    slot = await GameSlotsRepo.get_by_id(session, slot_id)
    if slot is None:
        raise GameSlotNotFoundError
    own_answer = (
        slot.initiator_answer if party_role == PARTY_ROLE_INITIATOR else slot.counterpart_answer
    )
    if own_answer is not None or slot.status == SLOT_STATUS_COMPLETED:
        logger.info(
            "answer_duplicate_rejected",
            slot_id=str(slot_id),
            party_role=party_role,
        )
        raise DuplicateAnswerError
    if slot.status == SLOT_STATUS_EXPIRED or as_utc(slot.expires_at) <= now_utc:
        raise GameSlotExpiredError
    # The row changed between the write and this read; a retry would race again.
    raise DuplicateAnswerError


async def submit_answer(
    session: AsyncSession,
    *,
    slot_id: UUID,
    party_role: str,
    selected_option: int,
    now_utc: datetime,
) -> AnswerSubmissionResult:
    if party_role not in PARTY_ROLES:
        raise ValueError(f"unknown party role: {party_role}")

    loaded = await GameSlotsRepo.get_with_question(session, slot_id=slot_id)
    if loaded is None:
        raise GameSlotNotFoundError
    _, question = loaded
    if selected_option < 0 or selected_option >= len(question.options or ()):
        raise InvalidAnswerOptionError

    slot = await GameSlotsRepo.claim_answer(
        session,
        slot_id=slot_id,
        party_role=party_role,
        selected_option=selected_option,
        now_utc=now_utc,
    )
    if slot is None:
        await _raise_rejection(session, slot_id=slot_id, party_role=party_role, now_utc=now_utc)

    snapshot = build_slot_snapshot(slot, question=to_question_view(question))
    outcome = _match_outcome(snapshot.is_match)
    logger.info(
        "answer_submitted",
        slot_id=str(slot_id),
        pairing_id=str(snapshot.pairing_id),
        party_role=party_role,
        status=snapshot.status,
        match_outcome=outcome,
    )
    return AnswerSubmissionResult(
        snapshot=snapshot,
        party_role=party_role,
        match_outcome=outcome,
    )
