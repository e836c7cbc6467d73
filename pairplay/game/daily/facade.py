from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterator, Sequence
from contextlib import contextmanager
from datetime import date, datetime
from uuid import UUID

import structlog
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pairplay.core.time import utc_now
from pairplay.game.daily import answers as answers_service
from pairplay.game.daily import generator as generator_service
from pairplay.game.daily import progress as progress_service
from pairplay.game.daily.types import (
    AnswerSubmissionResult,
    DailyProgress,
    GameSlotSnapshot,
    LifetimeProgress,
)
from pairplay.game.errors import BackendUnavailableError, PairingInviteExpiredError
from pairplay.game.pairings import service as pairings_service
from pairplay.game.pairings.types import PairingInviteResult, PairingSnapshot
from pairplay.realtime.events import CHANGE_KIND_INSERT, CHANGE_KIND_UPDATE, SlotChange
from pairplay.realtime.publisher import ChangePublisher

logger = structlog.get_logger(__name__)

ProgressRefresher = Callable[[UUID], Awaitable[object]]

BACKEND_ERRORS: tuple[type[BaseException], ...] = (
    OperationalError,
    InterfaceError,
    RedisConnectionError,
    RedisTimeoutError,
)


@contextmanager
def translate_backend_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except BACKEND_ERRORS as exc:
        logger.warning("backend_unavailable", operation=operation, error=type(exc).__name__)
        raise BackendUnavailableError(operation) from exc


class DailyGameSync:
    """Transaction owner for the daily game: commit first, then notify."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        publisher: ChangePublisher | None,
        progress_refresher: ProgressRefresher | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._publisher = publisher
        self._progress_refresher = progress_refresher or self._refresh_pairing_stats
        self._clock = clock
        self._background_tasks: set[asyncio.Task[None]] = set()

    async def create_invite(
        self,
        *,
        initiator_user_id: UUID,
        relationship_kind: str,
        nickname: str | None = None,
    ) -> PairingInviteResult:
        with translate_backend_errors("create_invite"):
            async with self._session_factory.begin() as session:
                return await pairings_service.create_pairing_invite(
                    session,
                    initiator_user_id=initiator_user_id,
                    relationship_kind=relationship_kind,
                    nickname=nickname,
                    now_utc=self._clock(),
                )

    async def accept_invite(self, *, user_id: UUID, invite_code: str) -> PairingSnapshot:
        with translate_backend_errors("accept_invite"):
            async with self._session_factory.begin() as session:
                try:
                    return await pairings_service.accept_pairing_invite(
                        session,
                        user_id=user_id,
                        invite_code=invite_code,
                        now_utc=self._clock(),
                    )
                except PairingInviteExpiredError as exc:
                    expired_error = exc
        # Raised only after the EXPIRED mark is committed.
        raise expired_error

    async def decline_invite(self, *, user_id: UUID, pairing_id: UUID) -> PairingSnapshot:
        with translate_backend_errors("decline_invite"):
            async with self._session_factory.begin() as session:
                return await pairings_service.decline_pairing_invite(
                    session,
                    user_id=user_id,
                    pairing_id=pairing_id,
                    now_utc=self._clock(),
                )

    async def update_preferences(
        self,
        *,
        user_id: UUID,
        pairing_id: UUID,
        daily_quota: int | None = None,
        allowed_categories: Sequence[str] | None = None,
    ) -> PairingSnapshot:
        with translate_backend_errors("update_preferences"):
            async with self._session_factory.begin() as session:
                return await pairings_service.update_pairing_preferences(
                    session,
                    user_id=user_id,
                    pairing_id=pairing_id,
                    daily_quota=daily_quota,
                    allowed_categories=(
                        tuple(allowed_categories) if allowed_categories is not None else None
                    ),
                    now_utc=self._clock(),
                )

    async def get_pairing(self, *, user_id: UUID, pairing_id: UUID) -> PairingSnapshot:
        with translate_backend_errors("get_pairing"):
            async with self._session_factory() as session:
                return await pairings_service.get_pairing_for_member(
                    session,
                    pairing_id=pairing_id,
                    user_id=user_id,
                )

    async def get_todays_games(
        self,
        *,
        user_id: UUID,
        pairing_id: UUID,
        game_date: date,
    ) -> list[GameSlotSnapshot]:
        with translate_backend_errors("get_todays_games"):
            async with self._session_factory.begin() as session:
                await pairings_service.get_pairing_for_member(
                    session,
                    pairing_id=pairing_id,
                    user_id=user_id,
                )
                game_set = await generator_service.ensure_daily_game_set(
                    session,
                    pairing_id=pairing_id,
                    game_date=game_date,
                    now_utc=self._clock(),
                )
        if game_set.created_now:
            await self._publish(
                [
                    SlotChange.from_snapshot(snapshot, change_kind=CHANGE_KIND_INSERT)
                    for snapshot in game_set.slots
                ]
            )
        return game_set.slots

    async def get_next_slot(
        self,
        *,
        user_id: UUID,
        pairing_id: UUID,
        game_date: date,
    ) -> GameSlotSnapshot | None:
        with translate_backend_errors("get_next_slot"):
            async with self._session_factory() as session:
                pairing = await pairings_service.get_pairing_for_member(
                    session,
                    pairing_id=pairing_id,
                    user_id=user_id,
                )
                return await generator_service.get_next_unanswered_slot(
                    session,
                    pairing_id=pairing_id,
                    game_date=game_date,
                    party_role=pairings_service.resolve_party_role(pairing, user_id),
                    now_utc=self._clock(),
                )

    async def submit_answer(
        self,
        *,
        user_id: UUID,
        slot_id: UUID,
        selected_option: int,
    ) -> AnswerSubmissionResult:
        with translate_backend_errors("submit_answer"):
            async with self._session_factory.begin() as session:
                pairing_id, party_role = await answers_service.resolve_slot_party_role(
                    session,
                    slot_id=slot_id,
                    user_id=user_id,
                )
                result = await answers_service.submit_answer(
                    session,
                    slot_id=slot_id,
                    party_role=party_role,
                    selected_option=selected_option,
                    now_utc=self._clock(),
                )

        await self._publish([SlotChange.from_snapshot(result.snapshot, change_kind=CHANGE_KIND_UPDATE)])
        if result.completed_now:
            self._schedule_progress_refresh(pairing_id)
        return result

    async def get_daily_progress(
        self,
        *,
        user_id: UUID,
        pairing_id: UUID,
        game_date: date,
    ) -> DailyProgress:
        with translate_backend_errors("get_daily_progress"):
            async with self._session_factory() as session:
                return await progress_service.get_daily_progress(
                    session,
                    pairing_id=pairing_id,
                    user_id=user_id,
                    game_date=game_date,
                )

    async def get_lifetime_progress(self, *, user_id: UUID, pairing_id: UUID) -> LifetimeProgress:
        with translate_backend_errors("get_lifetime_progress"):
            async with self._session_factory() as session:
                await pairings_service.get_pairing_for_member(
                    session,
                    pairing_id=pairing_id,
                    user_id=user_id,
                )
                return await progress_service.get_lifetime_progress(session, pairing_id=pairing_id)

    async def list_history(
        self,
        *,
        user_id: UUID,
        pairing_id: UUID,
        limit: int = 50,
    ) -> list[GameSlotSnapshot]:
        with translate_backend_errors("list_history"):
            async with self._session_factory() as session:
                await pairings_service.get_pairing_for_member(
                    session,
                    pairing_id=pairing_id,
                    user_id=user_id,
                )
                return await generator_service.list_completed_history(
                    session,
                    pairing_id=pairing_id,
                    limit=limit,
                )

    async def wait_for_background(self) -> None:
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    async def aclose(self) -> None:
        await self.wait_for_background()

    async def _publish(self, changes: list[SlotChange]) -> None:
        if self._publisher is None or not changes:
            return
        try:
            await self._publisher.publish_slots(changes)
        except Exception:
            # The write is committed; subscribers catch up on their next read.
            logger.warning(
                "slot_change_publish_failed",
                changes_total=len(changes),
                exc_info=True,
            )

    def _schedule_progress_refresh(self, pairing_id: UUID) -> None:
        task = asyncio.create_task(
            self._run_progress_refresh(pairing_id),
            name=f"progress-refresh:{pairing_id}",
        )
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _run_progress_refresh(self, pairing_id: UUID) -> None:
        try:
            await self._progress_refresher(pairing_id)
        except Exception:
            logger.warning(
                "pairing_stats_refresh_failed",
                pairing_id=str(pairing_id),
                exc_info=True,
            )

    async def _refresh_pairing_stats(self, pairing_id: UUID) -> LifetimeProgress:
        async with self._session_factory.begin() as session:
            return await progress_service.refresh_pairing_stats(
                session,
                pairing_id=pairing_id,
                now_utc=self._clock(),
            )
