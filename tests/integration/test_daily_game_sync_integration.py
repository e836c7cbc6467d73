from __future__ import annotations

from uuid import UUID, uuid4

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.exc import OperationalError

from pairplay.db.repo.pairing_stats_repo import PairingStatsRepo
from pairplay.db.session import SessionLocal
from pairplay.game.daily.facade import DailyGameSync
from pairplay.game.errors import BackendUnavailableError, PairingAccessError
from pairplay.realtime.events import SlotChange, SlotStateView
from pairplay.realtime.propagator import ChangePropagator, PairingScope
from pairplay.realtime.publisher import ChangePublisher
from tests.integration.daily_game_fixtures import GAME_DATE, NOW_UTC, _create_pairing, _seed_questions
from tests.realtime.fake_transport import FakeTransport


def _sync(transport: FakeTransport | None = None, **kwargs) -> DailyGameSync:
    publisher = ChangePublisher(transport) if transport is not None else None
    return DailyGameSync(SessionLocal, publisher, clock=lambda: NOW_UTC, **kwargs)


class _BrokenPublisher:
    async def publish_slots(self, changes) -> int:
        raise RedisConnectionError("redis down")


class _UnreachableDatabase:
    def __call__(self):
        return self

    def begin(self):
        return self

    async def __aenter__(self):
        raise OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


@pytest.mark.asyncio
async def test_todays_games_publish_inserts_once_and_subscribers_converge() -> None:
    await _seed_questions(6)
    pairing = await _create_pairing(daily_quota=3)
    transport = FakeTransport()
    propagator = ChangePropagator(transport)
    view = SlotStateView()
    await propagator.subscribe(PairingScope(pairing.id), view.apply)
    sync = _sync(transport)

    first = await sync.get_todays_games(
        user_id=pairing.initiator_user_id,
        pairing_id=pairing.id,
        game_date=GAME_DATE,
    )
    second = await sync.get_todays_games(
        user_id=pairing.counterpart_user_id,
        pairing_id=pairing.id,
        game_date=GAME_DATE,
    )

    assert [slot.slot_id for slot in first] == [slot.slot_id for slot in second]
    assert len(transport.published) == 3
    assert {payload["change_kind"] for _, payload in transport.published} == {"INSERT"}

    await sync.submit_answer(user_id=pairing.initiator_user_id, slot_id=first[0].slot_id, selected_option=1)
    result = await sync.submit_answer(
        user_id=pairing.counterpart_user_id,
        slot_id=first[0].slot_id,
        selected_option=1,
    )
    await sync.wait_for_background()

    assert result.party_role == "COUNTERPART"
    assert result.match_outcome == "MATCH"
    converged = view.slots_for(pairing.id, GAME_DATE)
    assert [change.status for change in converged] == ["COMPLETED", "AWAITING_BOTH", "AWAITING_BOTH"]
    assert converged[0] == SlotChange.from_snapshot(result.snapshot)

    # Redelivering an older event does not roll the local view back.
    await transport.deliver(*transport.published[0])
    assert view.get(first[0].slot_id) == converged[0]

    async with SessionLocal() as session:
        stats = await PairingStatsRepo.get_by_pairing_id(session, pairing.id)
    assert stats is not None
    assert (stats.total_slots_completed, stats.total_matches, stats.sync_score) == (1, 1, 100)
    await propagator.close()


@pytest.mark.asyncio
async def test_progress_refresh_is_scheduled_only_on_completion() -> None:
    await _seed_questions(6)
    pairing = await _create_pairing(daily_quota=2)
    refreshed: list[UUID] = []

    async def record_refresh(pairing_id: UUID) -> None:
        refreshed.append(pairing_id)

    sync = _sync(FakeTransport(), progress_refresher=record_refresh)
    slots = await sync.get_todays_games(
        user_id=pairing.initiator_user_id,
        pairing_id=pairing.id,
        game_date=GAME_DATE,
    )

    await sync.submit_answer(user_id=pairing.initiator_user_id, slot_id=slots[0].slot_id, selected_option=0)
    await sync.wait_for_background()
    assert refreshed == []

    await sync.submit_answer(user_id=pairing.counterpart_user_id, slot_id=slots[0].slot_id, selected_option=2)
    await sync.aclose()
    assert refreshed == [pairing.id]


@pytest.mark.asyncio
async def test_failed_refresh_does_not_fail_the_answer() -> None:
    await _seed_questions(6)
    pairing = await _create_pairing(daily_quota=1)

    async def broken_refresh(pairing_id: UUID) -> None:
        raise RuntimeError("stats store unavailable")

    sync = _sync(progress_refresher=broken_refresh)
    slots = await sync.get_todays_games(
        user_id=pairing.initiator_user_id,
        pairing_id=pairing.id,
        game_date=GAME_DATE,
    )
    await sync.submit_answer(user_id=pairing.initiator_user_id, slot_id=slots[0].slot_id, selected_option=0)
    result = await sync.submit_answer(
        user_id=pairing.counterpart_user_id,
        slot_id=slots[0].slot_id,
        selected_option=0,
    )
    await sync.wait_for_background()

    assert result.match_outcome == "MATCH"
    lifetime = await sync.get_lifetime_progress(user_id=pairing.initiator_user_id, pairing_id=pairing.id)
    assert lifetime.total_slots_completed == 1


@pytest.mark.asyncio
async def test_publish_failure_keeps_committed_answer() -> None:
    await _seed_questions(6)
    pairing = await _create_pairing(daily_quota=1)
    sync = DailyGameSync(SessionLocal, _BrokenPublisher(), clock=lambda: NOW_UTC)

    slots = await sync.get_todays_games(
        user_id=pairing.initiator_user_id,
        pairing_id=pairing.id,
        game_date=GAME_DATE,
    )
    result = await sync.submit_answer(
        user_id=pairing.initiator_user_id,
        slot_id=slots[0].slot_id,
        selected_option=2,
    )

    assert result.snapshot.initiator_answer == 2
    next_slot = await sync.get_next_slot(
        user_id=pairing.counterpart_user_id,
        pairing_id=pairing.id,
        game_date=GAME_DATE,
    )
    assert next_slot is not None
    assert next_slot.initiator_answer == 2
    assert await sync.get_next_slot(
        user_id=pairing.initiator_user_id,
        pairing_id=pairing.id,
        game_date=GAME_DATE,
    ) is None


@pytest.mark.asyncio
async def test_non_member_cannot_read_or_answer() -> None:
    await _seed_questions(6)
    pairing = await _create_pairing(daily_quota=1)
    sync = _sync(FakeTransport())
    slots = await sync.get_todays_games(
        user_id=pairing.initiator_user_id,
        pairing_id=pairing.id,
        game_date=GAME_DATE,
    )
    outsider = uuid4()

    with pytest.raises(PairingAccessError):
        await sync.get_todays_games(user_id=outsider, pairing_id=pairing.id, game_date=GAME_DATE)
    with pytest.raises(PairingAccessError):
        await sync.submit_answer(user_id=outsider, slot_id=slots[0].slot_id, selected_option=0)
    with pytest.raises(PairingAccessError):
        await sync.get_daily_progress(user_id=outsider, pairing_id=pairing.id, game_date=GAME_DATE)
    with pytest.raises(PairingAccessError):
        await sync.list_history(user_id=outsider, pairing_id=pairing.id)


@pytest.mark.asyncio
async def test_history_lists_completed_slots_newest_first() -> None:
    await _seed_questions(6)
    pairing = await _create_pairing(daily_quota=2)
    sync = _sync()
    slots = await sync.get_todays_games(
        user_id=pairing.initiator_user_id,
        pairing_id=pairing.id,
        game_date=GAME_DATE,
    )
    for user_id in (pairing.initiator_user_id, pairing.counterpart_user_id):
        await sync.submit_answer(user_id=user_id, slot_id=slots[1].slot_id, selected_option=1)
    await sync.wait_for_background()

    history = await sync.list_history(user_id=pairing.counterpart_user_id, pairing_id=pairing.id)

    assert [slot.slot_id for slot in history] == [slots[1].slot_id]
    assert history[0].question is not None


@pytest.mark.asyncio
async def test_backend_failures_surface_as_retryable_errors() -> None:
    sync = DailyGameSync(_UnreachableDatabase(), None, clock=lambda: NOW_UTC)

    with pytest.raises(BackendUnavailableError) as exc_info:
        await sync.get_todays_games(user_id=uuid4(), pairing_id=uuid4(), game_date=GAME_DATE)
    assert exc_info.value.retryable is True

    with pytest.raises(BackendUnavailableError):
        await sync.get_lifetime_progress(user_id=uuid4(), pairing_id=uuid4())
