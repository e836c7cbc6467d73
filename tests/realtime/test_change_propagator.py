from __future__ import annotations

from datetime import date
from uuid import UUID, uuid4

import pytest

from pairplay.realtime.events import SlotChange
from pairplay.realtime.propagator import ChangePropagator, PairingScope, UserScope
from pairplay.realtime.publisher import ChangePublisher, pairing_channel
from tests.realtime.fake_transport import FakeTransport


def _change(pairing_id: UUID, *, position: int = 1, status: str = "AWAITING_COUNTERPART") -> SlotChange:
    return SlotChange(
        slot_id=uuid4(),
        pairing_id=pairing_id,
        game_date=date(2026, 3, 2),
        position=position,
        status=status,
        initiator_answer=0 if status != "AWAITING_BOTH" else None,
        counterpart_answer=None,
        is_match=None,
    )


async def test_pairing_scope_shares_one_stream_across_subscribers() -> None:
    transport = FakeTransport()
    propagator = ChangePropagator(transport)
    publisher = ChangePublisher(transport)
    pairing_id = uuid4()
    first: list[SlotChange] = []
    second: list[SlotChange] = []

    unsubscribe_first = await propagator.subscribe(PairingScope(pairing_id), first.append)
    unsubscribe_second = await propagator.subscribe(PairingScope(pairing_id), second.append)

    assert transport.subscribe_calls == 1
    assert propagator.subscriber_count(PairingScope(pairing_id)) == 2

    change = _change(pairing_id)
    await publisher.publish_slots([change])
    assert first == [change]
    assert second == [change]
    assert transport.published[0][0] == pairing_channel(pairing_id)

    await unsubscribe_first()
    assert propagator.active_scopes == frozenset({PairingScope(pairing_id)})
    await unsubscribe_second()
    assert propagator.active_scopes == frozenset()
    assert transport.subscriptions == []


async def test_pairing_scope_ignores_other_pairings() -> None:
    transport = FakeTransport()
    propagator = ChangePropagator(transport)
    pairing_id = uuid4()
    received: list[SlotChange] = []
    await propagator.subscribe(PairingScope(pairing_id), received.append)

    await ChangePublisher(transport).publish_slots([_change(uuid4())])

    assert received == []


async def test_user_scope_filters_by_membership_and_caches_lookup() -> None:
    transport = FakeTransport()
    user_id = uuid4()
    own_pairing = uuid4()
    foreign_pairing = uuid4()
    lookups: list[UUID] = []

    async def members(pairing_id: UUID) -> frozenset[UUID] | None:
        lookups.append(pairing_id)
        if pairing_id == own_pairing:
            return frozenset({user_id, uuid4()})
        return frozenset({uuid4(), uuid4()})

    propagator = ChangePropagator(transport, pairing_members=members)
    received: list[SlotChange] = []
    await propagator.subscribe(UserScope(user_id), received.append)

    publisher = ChangePublisher(transport)
    own_first = _change(own_pairing, position=1)
    own_second = _change(own_pairing, position=2)
    await publisher.publish_slots([own_first, _change(foreign_pairing), own_second])

    assert received == [own_first, own_second]
    assert lookups.count(own_pairing) == 1


async def test_user_scope_requires_membership_lookup() -> None:
    propagator = ChangePropagator(FakeTransport())
    with pytest.raises(ValueError):
        await propagator.subscribe(UserScope(uuid4()), lambda change: None)


async def test_failing_callback_does_not_break_stream() -> None:
    transport = FakeTransport()
    propagator = ChangePropagator(transport)
    pairing_id = uuid4()
    received: list[SlotChange] = []

    async def broken(change: SlotChange) -> None:
        raise RuntimeError("render failed")

    await propagator.subscribe(PairingScope(pairing_id), broken)
    await propagator.subscribe(PairingScope(pairing_id), received.append)

    publisher = ChangePublisher(transport)
    first, second = _change(pairing_id, position=1), _change(pairing_id, position=2)
    await publisher.publish_slots([first])
    await publisher.publish_slots([second])

    assert received == [first, second]


async def test_malformed_feed_messages_are_dropped() -> None:
    transport = FakeTransport()
    propagator = ChangePropagator(transport)
    pairing_id = uuid4()
    received: list[SlotChange] = []
    await propagator.subscribe(PairingScope(pairing_id), received.append)

    await transport.publish(pairing_channel(pairing_id), {"slot_id": "garbage"})

    assert received == []


async def test_unsubscribe_is_idempotent_and_close_tears_down_everything() -> None:
    transport = FakeTransport()
    propagator = ChangePropagator(transport, pairing_members=lambda pairing_id: None)
    unsubscribe = await propagator.subscribe(PairingScope(uuid4()), lambda change: None)
    await propagator.subscribe(PairingScope(uuid4()), lambda change: None)
    await propagator.subscribe(UserScope(uuid4()), lambda change: None)

    await unsubscribe()
    await unsubscribe()
    assert len(propagator.active_scopes) == 2

    await propagator.close()
    assert propagator.active_scopes == frozenset()
    assert transport.subscriptions == []


class _FirstCloseFailingTransport(FakeTransport):
    async def subscribe(self, channel: str, handler):
        subscription = await super().subscribe(channel, handler)
        if self.subscribe_calls == 1:

            async def fail_close() -> None:
                raise ConnectionError("redis unavailable")

            subscription.close = fail_close
        return subscription


async def test_close_releases_remaining_streams_when_one_close_fails() -> None:
    transport = _FirstCloseFailingTransport()
    propagator = ChangePropagator(transport)
    first_pairing, second_pairing = uuid4(), uuid4()
    await propagator.subscribe(PairingScope(first_pairing), lambda change: None)
    await propagator.subscribe(PairingScope(second_pairing), lambda change: None)

    await propagator.close()

    assert propagator.active_scopes == frozenset()
    assert [subscription.key for subscription in transport.subscriptions] == [
        ("channel", pairing_channel(first_pairing))
    ]


async def test_membership_check_without_lookup_denies_instead_of_failing() -> None:
    propagator = ChangePropagator(FakeTransport())

    assert await propagator._is_member(uuid4(), uuid4()) is False
