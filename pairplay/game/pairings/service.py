from __future__ import annotations

from datetime import datetime, timedelta
from uuid import UUID, uuid4

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pairplay.core.config import get_settings
from pairplay.core.invite_codes import generate_invite_code, normalize_invite_code
from pairplay.core.time import as_utc, as_utc_or_none
from pairplay.db.models.pairings import Pairing
from pairplay.db.repo.pairings_repo import PairingsRepo
from pairplay.game.constants import (
    PAIRING_STATUS_ACCEPTED,
    PAIRING_STATUS_DECLINED,
    PAIRING_STATUS_EXPIRED,
    PAIRING_STATUS_PENDING,
    PARTY_ROLE_COUNTERPART,
    PARTY_ROLE_INITIATOR,
    RELATIONSHIP_KINDS,
    default_categories_for_relationship,
)
from pairplay.game.errors import (
    InvalidPairingPreferencesError,
    PairingAccessError,
    PairingAlreadyExistsError,
    PairingInviteExpiredError,
    PairingInviteOwnError,
    PairingNotActiveError,
    PairingNotFoundError,
)
from pairplay.game.pairings.rules import validate_allowed_categories, validate_daily_quota
from pairplay.game.pairings.types import PairingInviteResult, PairingSnapshot

logger = structlog.get_logger(__name__)

INVITE_CODE_MAX_ATTEMPTS = 5


def build_pairing_snapshot(pairing: Pairing) -> PairingSnapshot:
    return PairingSnapshot(
        pairing_id=pairing.id,
        initiator_user_id=pairing.initiator_user_id,
        counterpart_user_id=pairing.counterpart_user_id,
        relationship_kind=pairing.relationship_kind,
        status=pairing.status,
        daily_quota=int(pairing.daily_quota),
        allowed_categories=tuple(pairing.allowed_categories or ()),
        nickname=pairing.nickname,
        invite_code=pairing.invite_code,
        invite_expires_at=as_utc_or_none(pairing.invite_expires_at),
        accepted_at=as_utc_or_none(pairing.accepted_at),
    )


def resolve_party_role(pairing: Pairing | PairingSnapshot, user_id: UUID) -> str:
    if pairing.initiator_user_id == user_id:
        return PARTY_ROLE_INITIATOR
    if pairing.counterpart_user_id is not None and pairing.counterpart_user_id == user_id:
        return PARTY_ROLE_COUNTERPART
    raise PairingAccessError


async def create_pairing_invite(
    session: AsyncSession,
    *,
    initiator_user_id: UUID,
    relationship_kind: str,
    nickname: str | None,
    now_utc: datetime,
) -> PairingInviteResult:
    if relationship_kind not in RELATIONSHIP_KINDS:
        raise InvalidPairingPreferencesError(f"unknown relationship kind: {relationship_kind}")

    settings = get_settings()
    invite_expires_at = now_utc + timedelta(days=settings.invite_code_ttl_days)
    resolved_nickname = nickname.strip()[:64] if nickname and nickname.strip() else None

    for attempt in range(1, INVITE_CODE_MAX_ATTEMPTS + 1):
        invite_code = generate_invite_code()
        pairing = Pairing(
            id=uuid4(),
            initiator_user_id=initiator_user_id,
            counterpart_user_id=None,
            relationship_kind=relationship_kind,
            status=PAIRING_STATUS_PENDING,
            daily_quota=settings.daily_game_default_quota,
            allowed_categories=list(default_categories_for_relationship(relationship_kind)),
            nickname=resolved_nickname,
            invite_code=invite_code,
            invite_expires_at=invite_expires_at,
            created_at=now_utc,
            updated_at=now_utc,
            accepted_at=None,
        )
        try:
            async with session.begin_nested():
                await PairingsRepo.create(session, pairing=pairing)
        except IntegrityError:
            logger.warning("pairing_invite_code_collision", attempt=attempt)
            continue

        logger.info(
            "pairing_invite_created",
            pairing_id=str(pairing.id),
            relationship_kind=relationship_kind,
        )
        return PairingInviteResult(
            snapshot=build_pairing_snapshot(pairing),
            invite_code=invite_code,
            invite_expires_at=invite_expires_at,
        )

    raise RuntimeError("could not allocate a unique invite code")


async def accept_pairing_invite(
    session: AsyncSession,
    *,
    user_id: UUID,
    invite_code: str,
    now_utc: datetime,
) -> PairingSnapshot:
    pairing = await PairingsRepo.get_by_invite_code_for_update(
        session, normalize_invite_code(invite_code)
    )
    if pairing is None or pairing.status != PAIRING_STATUS_PENDING:
        raise PairingNotFoundError
    if pairing.initiator_user_id == user_id:
        raise PairingInviteOwnError
    if pairing.invite_expires_at is not None and as_utc(pairing.invite_expires_at) <= now_utc:
        pairing.status = PAIRING_STATUS_EXPIRED
        pairing.updated_at = now_utc
        await session.flush()
        logger.info("pairing_invite_expired", pairing_id=str(pairing.id))
        raise PairingInviteExpiredError

    existing = await PairingsRepo.get_accepted_between(
        session,
        first_user_id=pairing.initiator_user_id,
        second_user_id=user_id,
    )
    if existing is not None:
        raise PairingAlreadyExistsError

    pairing.counterpart_user_id = user_id
    pairing.status = PAIRING_STATUS_ACCEPTED
    pairing.invite_code = None
    pairing.invite_expires_at = None
    pairing.accepted_at = now_utc
    pairing.updated_at = now_utc
    await session.flush()
    logger.info("pairing_invite_accepted", pairing_id=str(pairing.id))
    return build_pairing_snapshot(pairing)


async def decline_pairing_invite(
    session: AsyncSession,
    *,
    user_id: UUID,
    pairing_id: UUID,
    now_utc: datetime,
) -> PairingSnapshot:
    pairing = await PairingsRepo.get_by_id_for_update(session, pairing_id)
    if pairing is None:
        raise PairingNotFoundError
    if pairing.status != PAIRING_STATUS_PENDING:
        raise PairingNotActiveError
    if pairing.initiator_user_id == user_id:
        raise PairingInviteOwnError

    pairing.status = PAIRING_STATUS_DECLINED
    pairing.invite_code = None
    pairing.updated_at = now_utc
    await session.flush()
    logger.info("pairing_invite_declined", pairing_id=str(pairing.id))
    return build_pairing_snapshot(pairing)


async def update_pairing_preferences(
    session: AsyncSession,
    *,
    user_id: UUID,
    pairing_id: UUID,
    daily_quota: int | None,
    allowed_categories: list[str] | tuple[str, ...] | None,
    now_utc: datetime,
) -> PairingSnapshot:
    """Changes apply from the next generated day; existing slots keep their set."""
    pairing = await PairingsRepo.get_by_id_for_update(session, pairing_id)
    if pairing is None:
        raise PairingNotFoundError
    resolve_party_role(pairing, user_id)

    if daily_quota is not None:
        pairing.daily_quota = validate_daily_quota(daily_quota)
    if allowed_categories is not None:
        pairing.allowed_categories = list(
            validate_allowed_categories(
                allowed_categories,
                relationship_kind=pairing.relationship_kind,
            )
        )
    pairing.updated_at = now_utc
    await session.flush()
    return build_pairing_snapshot(pairing)


async def get_pairing_for_member(
    session: AsyncSession,
    *,
    pairing_id: UUID,
    user_id: UUID,
) -> PairingSnapshot:
    pairing = await PairingsRepo.get_by_id(session, pairing_id)
    if pairing is None:
        raise PairingNotFoundError
    resolve_party_role(pairing, user_id)
    return build_pairing_snapshot(pairing)


async def list_pairings_for_user(
    session: AsyncSession,
    *,
    user_id: UUID,
) -> list[PairingSnapshot]:
    pairings = await PairingsRepo.list_accepted_for_user(session, user_id=user_id)
    return [build_pairing_snapshot(pairing) for pairing in pairings]
