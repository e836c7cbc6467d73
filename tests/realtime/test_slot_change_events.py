from __future__ import annotations

from datetime import date, datetime, timezone
from uuid import uuid4

import pytest

from pairplay.realtime.events import CHANGE_KIND_INSERT, SlotChange, SlotStateView

UTC = timezone.utc


def _change(slot_id, pairing_id, *, status: str, initiator=None, counterpart=None, is_match=None):
    return SlotChange(
        slot_id=slot_id,
        pairing_id=pairing_id,
        game_date=date(2026, 3, 1),
        position=1,
        status=status,
        initiator_answer=initiator,
        counterpart_answer=counterpart,
        is_match=is_match,
    )


def test_from_message_normalizes_raw_feed_record() -> None:
    slot_id = uuid4()
    pairing_id = uuid4()
    change = SlotChange.from_message(
        {
            "slot_id": str(slot_id),
            "pairing_id": str(pairing_id),
            "game_date": "2026-03-01",
            "position": "2",
            "status": "COMPLETED",
            "initiator_answer": 1,
            "counterpart_answer": "1",
            "is_match": True,
            "completed_at": "2026-03-01T10:00:00+00:00",
            "change_kind": "insert",
        }
    )

    assert change.slot_id == slot_id
    assert change.position == 2
    assert change.counterpart_answer == 1
    assert change.completed_at == datetime(2026, 3, 1, 10, 0, tzinfo=UTC)
    assert change.change_kind == CHANGE_KIND_INSERT


def test_to_message_round_trips_through_from_message() -> None:
    change = _change(uuid4(), uuid4(), status="AWAITING_COUNTERPART", initiator=3)
    assert SlotChange.from_message(change.to_message()) == change


@pytest.mark.parametrize(
    "payload",
    [
        {"slot_id": "not-a-uuid"},
        {
            "slot_id": str(uuid4()),
            "pairing_id": str(uuid4()),
            "game_date": "2026-03-01",
            "position": 1,
            "status": "DONE",
        },
        {"pairing_id": str(uuid4()), "status": "COMPLETED"},
    ],
)
def test_from_message_rejects_malformed_records(payload) -> None:
    with pytest.raises(ValueError):
        SlotChange.from_message(payload)


def test_slot_state_view_ignores_repeats_and_regressions() -> None:
    slot_id, pairing_id = uuid4(), uuid4()
    view = SlotStateView()
    created = _change(slot_id, pairing_id, status="AWAITING_BOTH")
    half = _change(slot_id, pairing_id, status="AWAITING_COUNTERPART", initiator=0)
    done = _change(
        slot_id, pairing_id, status="COMPLETED", initiator=0, counterpart=0, is_match=True
    )

    assert view.apply(created) is True
    assert view.apply(half) is True
    assert view.apply(half) is False
    assert view.apply(done) is True
    assert view.apply(created) is False
    assert view.apply(half) is False
    assert view.get(slot_id) == done


def test_slot_state_view_converges_under_redelivery_in_any_order() -> None:
    slot_id, pairing_id = uuid4(), uuid4()
    events = [
        _change(slot_id, pairing_id, status="AWAITING_BOTH"),
        _change(slot_id, pairing_id, status="AWAITING_INITIATOR", counterpart=2),
        _change(slot_id, pairing_id, status="COMPLETED", initiator=1, counterpart=2, is_match=False),
    ]

    in_order = SlotStateView()
    for event in events:
        in_order.apply(event)

    shuffled = SlotStateView()
    for event in [events[2], events[0], events[1], events[2], events[0]]:
        shuffled.apply(event)

    assert in_order.get(slot_id) == shuffled.get(slot_id) == events[2]
    assert shuffled.slots_for(pairing_id, date(2026, 3, 1)) == [events[2]]
