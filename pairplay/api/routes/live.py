from __future__ import annotations

import asyncio
import json
from typing import Any
from uuid import UUID

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from pairplay.core.teardown import TeardownStep, run_teardown
from pairplay.game.daily.facade import DailyGameSync
from pairplay.game.errors import BackendUnavailableError, DailyGameError
from pairplay.realtime.events import SlotChange
from pairplay.realtime.presence import PresenceChange, PresenceSession, PresenceState, PresenceTracker
from pairplay.realtime.propagator import ChangePropagator, PairingScope

from .daily_games_helpers import parse_caller_user_id

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["live"])

LIVE_MESSAGE_SLOT_CHANGE = "slot_change"
LIVE_MESSAGE_PRESENCE = "presence"


def presence_change_message(change: PresenceChange) -> dict[str, Any]:
    return {
        "type": LIVE_MESSAGE_PRESENCE,
        "kind": change.kind.value,
        "user_id": str(change.user_id),
        "pairing_id": str(change.pairing_id),
        "state": change.info.state.value if change.info is not None else None,
        "screen": change.info.screen if change.info is not None else None,
    }


async def _forward(websocket: WebSocket, outbox: asyncio.Queue[dict[str, Any]]) -> None:
    while True:
        message = await outbox.get()
        await websocket.send_json(message)


async def _apply_presence_updates(websocket: WebSocket, session: PresenceSession) -> None:
    while True:
        raw_message = await websocket.receive_text()
        try:
            payload = json.loads(raw_message)
            if not isinstance(payload, dict):
                raise ValueError("presence update must be an object")
            state = PresenceState(payload["state"]) if payload.get("state") else None
            screen = str(payload["screen"]) if payload.get("screen") else None
        except ValueError:
            logger.warning("live_presence_update_invalid", pairing_id=str(session.info.pairing_id))
            continue
        await session.update(state=state, screen=screen)


@router.websocket("/pairings/{pairing_id}/live")
async def pairing_live(websocket: WebSocket, pairing_id: UUID) -> None:
    """Streams slot changes and counterpart presence for one pairing.

    Inbound text frames are presence updates: `{"state": "playing", "screen": "game"}`.
    """
    user_id = parse_caller_user_id(websocket.headers.get("X-User-Id"))
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    sync: DailyGameSync = websocket.app.state.daily_game_sync
    propagator: ChangePropagator = websocket.app.state.change_propagator
    presence_tracker: PresenceTracker = websocket.app.state.presence_tracker

    try:
        await sync.get_pairing(user_id=user_id, pairing_id=pairing_id)
    except BackendUnavailableError:
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return
    except DailyGameError as exc:
        logger.info("live_access_denied", pairing_id=str(pairing_id), reason=type(exc).__name__)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    async def on_slot_change(change: SlotChange) -> None:
        await outbox.put({"type": LIVE_MESSAGE_SLOT_CHANGE, "change": change.to_message()})

    async def on_presence_change(change: PresenceChange) -> None:
        await outbox.put(presence_change_message(change))

    teardown: list[TeardownStep] = []
    sender: asyncio.Task[None] | None = None
    try:
        unsubscribe = await propagator.subscribe(PairingScope(pairing_id), on_slot_change)
        teardown.append(("slot_changes", unsubscribe))
        unobserve = await presence_tracker.observe(pairing_id, user_id, on_presence_change)
        teardown.append(("presence_observer", unobserve))
        presence_session = await presence_tracker.track(user_id, pairing_id)
        teardown.append(("presence_session", presence_session.untrack))

        await websocket.accept()
        logger.info("live_connected", pairing_id=str(pairing_id))
        sender = asyncio.create_task(_forward(websocket, outbox))
        await _apply_presence_updates(websocket, presence_session)
    except WebSocketDisconnect:
        logger.info("live_disconnected", pairing_id=str(pairing_id))
    finally:
        if sender is not None:
            sender.cancel()
            await asyncio.gather(sender, return_exceptions=True)
        await run_teardown(reversed(teardown))
