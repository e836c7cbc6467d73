from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

import structlog

from pairplay.realtime.events import SlotChange
from pairplay.realtime.transport import RealtimeTransport

logger = structlog.get_logger(__name__)

PAIRING_CHANNEL_PREFIX = "game_slots:pairing:"
PAIRING_CHANNEL_PATTERN = f"{PAIRING_CHANNEL_PREFIX}*"


def pairing_channel(pairing_id: UUID) -> str:
    return f"{PAIRING_CHANNEL_PREFIX}{pairing_id}"


class ChangePublisher:
    def __init__(self, transport: RealtimeTransport) -> None:
        self._transport = transport

    async def publish_slots(self, changes: Sequence[SlotChange]) -> int:
        for change in changes:
            await self._transport.publish(pairing_channel(change.pairing_id), change.to_message())
        if changes:
            logger.debug("slot_changes_published", changes_total=len(changes))
        return len(changes)
