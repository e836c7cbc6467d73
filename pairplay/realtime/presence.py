from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Union
from uuid import UUID

import structlog

from pairplay.core.time import utc_now
from pairplay.realtime.transport import RealtimeTransport

logger = structlog.get_logger(__name__)

PRESENCE_EVENT_HEARTBEAT = "heartbeat"
PRESENCE_EVENT_LEAVE = "leave"


class PresenceState(str, Enum):
    ONLINE = "online"
    AWAY = "away"
    PLAYING = "playing"
    OFFLINE = "offline"


class PresenceChangeKind(str, Enum):
    JOIN = "JOIN"
    UPDATE = "UPDATE"
    LEAVE = "LEAVE"


@dataclass(frozen=True, slots=True)
class PresenceInfo:
    user_id: UUID
    pairing_id: UUID
    state: PresenceState
    screen: str
    sent_at: datetime

    def to_message(self, *, event: str) -> dict[str, Any]:
        return {
            "event": event,
            "user_id": str(self.user_id),
            "pairing_id": str(self.pairing_id),
            "state": self.state.value,
            "screen": self.screen,
            "sent_at": self.sent_at.isoformat(),
        }

    @classmethod
    def from_message(cls, payload: dict[str, Any]) -> PresenceInfo:
        try:
            return cls(
                user_id=UUID(str(payload["user_id"])),
                pairing_id=UUID(str(payload["pairing_id"])),
                state=PresenceState(payload.get("state", PresenceState.ONLINE.value)),
                screen=str(payload.get("screen") or "home"),
                sent_at=datetime.fromisoformat(str(payload["sent_at"])),
            )
        except (KeyError, TypeError) as exc:
            raise ValueError(f"malformed presence message: {exc}") from exc


@dataclass(frozen=True, slots=True)
class PresenceChange:
    kind: PresenceChangeKind
    user_id: UUID
    pairing_id: UUID
    info: PresenceInfo | None = None


PresenceCallback = Callable[[PresenceChange], Union[Awaitable[None], None]]
Unobserve = Callable[[], Awaitable[None]]


def presence_channel(pairing_id: UUID) -> str:
    return f"presence:pairing:{pairing_id}"


def presence_member_key(pairing_id: UUID, user_id: UUID) -> str:
    return f"presence:pairing:{pairing_id}:member:{user_id}"


def presence_member_pattern(pairing_id: UUID) -> str:
    return f"presence:pairing:{pairing_id}:member:*"


class PresenceSession:
    def __init__(self, tracker: PresenceTracker, info: PresenceInfo) -> None:
        self._tracker = tracker
        self._info = info
        self._heartbeat_task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def info(self) -> PresenceInfo:
        return self._info

    @property
    def is_active(self) -> bool:
        return not self._closed

    async def update(
        self,
        state: PresenceState | None = None,
        screen: str | None = None,
    ) -> None:
        if self._closed:
            return
        self._info = replace(
            self._info,
            state=state if state is not None else self._info.state,
            screen=screen if screen is not None else self._info.screen,
            sent_at=utc_now(),
        )
        await self._tracker._announce(self._info)

    async def untrack(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
            try:
                await self._heartbeat_task
            except asyncio.CancelledError:
                pass
        try:
            await self._tracker._leave(self._info)
        finally:
            self._tracker._sessions.discard(self)

    def _start_heartbeat(self) -> None:
        self._heartbeat_task = asyncio.create_task(
            self._heartbeat_loop(),
            name=f"presence:{self._info.pairing_id}:{self._info.user_id}",
        )

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self._tracker.heartbeat_seconds)
            self._info = replace(self._info, sent_at=utc_now())
            try:
                await self._tracker._announce(self._info)
            except Exception:
                logger.warning(
                    "presence_heartbeat_failed",
                    pairing_id=str(self._info.pairing_id),
                    exc_info=True,
                )


class _PresenceObserver:
    def __init__(
        self,
        *,
        pairing_id: UUID,
        self_user_id: UUID,
        timeout_seconds: float,
        on_change: PresenceCallback,
    ) -> None:
        self.pairing_id = pairing_id
        self.self_user_id = self_user_id
        self.timeout_seconds = timeout_seconds
        self._on_change = on_change
        self._known: dict[UUID, PresenceInfo] = {}
        self._timeouts: dict[UUID, asyncio.Task[None]] = {}

    async def handle(self, channel: str, payload: dict[str, Any]) -> None:
        try:
            info = PresenceInfo.from_message(payload)
        except ValueError as exc:
            logger.warning("presence_message_malformed", channel=channel, error=str(exc))
            return
        if info.pairing_id != self.pairing_id or info.user_id == self.self_user_id:
            return
        if payload.get("event") == PRESENCE_EVENT_LEAVE:
            await self._remove(info.user_id)
            return
        await self.seen(info)

    async def seen(self, info: PresenceInfo) -> None:
        if info.user_id == self.self_user_id:
            return
        previous = self._known.get(info.user_id)
        self._known[info.user_id] = info
        self._restart_timeout(info.user_id)
        if previous is None:
            await self._emit(PresenceChangeKind.JOIN, info.user_id, info)
        elif (previous.state, previous.screen) != (info.state, info.screen):
            await self._emit(PresenceChangeKind.UPDATE, info.user_id, info)

    def cancel(self) -> None:
        for task in self._timeouts.values():
            task.cancel()
        self._timeouts.clear()
        self._known.clear()

    def _restart_timeout(self, user_id: UUID) -> None:
        pending = self._timeouts.pop(user_id, None)
        if pending is not None:
            pending.cancel()
        self._timeouts[user_id] = asyncio.create_task(self._expire_after(user_id))

    async def _expire_after(self, user_id: UUID) -> None:
        await asyncio.sleep(self.timeout_seconds)
        self._timeouts.pop(user_id, None)
        if self._known.pop(user_id, None) is not None:
            logger.info("presence_member_timed_out", pairing_id=str(self.pairing_id))
            await self._emit(PresenceChangeKind.LEAVE, user_id, None)

    async def _remove(self, user_id: UUID) -> None:
        pending = self._timeouts.pop(user_id, None)
        if pending is not None:
            pending.cancel()
        if self._known.pop(user_id, None) is not None:
            await self._emit(PresenceChangeKind.LEAVE, user_id, None)

    async def _emit(self, kind: PresenceChangeKind, user_id: UUID, info: PresenceInfo | None) -> None:
        change = PresenceChange(kind=kind, user_id=user_id, pairing_id=self.pairing_id, info=info)
        try:
            result = self._on_change(change)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("presence_callback_failed", pairing_id=str(self.pairing_id))


class PresenceTracker:
    """Ephemeral per-pairing presence; never consulted for game state."""

    def __init__(
        self,
        transport: RealtimeTransport,
        *,
        heartbeat_seconds: float = 15.0,
        timeout_seconds: float = 45.0,
    ) -> None:
        if heartbeat_seconds <= 0 or timeout_seconds <= heartbeat_seconds:
            raise ValueError("timeout_seconds must exceed a positive heartbeat_seconds")
        self._transport = transport
        self.heartbeat_seconds = heartbeat_seconds
        self.timeout_seconds = timeout_seconds
        self._sessions: set[PresenceSession] = set()

    async def track(
        self,
        user_id: UUID,
        pairing_id: UUID,
        state: PresenceState = PresenceState.ONLINE,
        screen: str = "home",
    ) -> PresenceSession:
        info = PresenceInfo(
            user_id=user_id,
            pairing_id=pairing_id,
            state=state,
            screen=screen,
            sent_at=utc_now(),
        )
        session = PresenceSession(self, info)
        await self._announce(info)
        session._start_heartbeat()
        self._sessions.add(session)
        logger.info("presence_tracked", pairing_id=str(pairing_id), state=state.value)
        return session

    async def observe(
        self,
        pairing_id: UUID,
        self_user_id: UUID,
        on_presence_change: PresenceCallback,
    ) -> Unobserve:
        observer = _PresenceObserver(
            pairing_id=pairing_id,
            self_user_id=self_user_id,
            timeout_seconds=self.timeout_seconds,
            on_change=on_presence_change,
        )
        subscription = await self._transport.subscribe(presence_channel(pairing_id), observer.handle)
        for payload in await self._transport.list_members(presence_member_pattern(pairing_id)):
            try:
                info = PresenceInfo.from_message(payload)
            except ValueError:
                continue
            await observer.seen(info)

        async def unobserve() -> None:
            observer.cancel()
            await subscription.close()

        return unobserve

    async def close(self) -> None:
        for session in list(self._sessions):
            try:
                await session.untrack()
            except Exception:
                logger.warning(
                    "presence_untrack_failed",
                    pairing_id=str(session.info.pairing_id),
                    exc_info=True,
                )

    async def _announce(self, info: PresenceInfo) -> None:
        message = info.to_message(event=PRESENCE_EVENT_HEARTBEAT)
        await self._transport.put_member(
            presence_member_key(info.pairing_id, info.user_id),
            message,
            ttl_seconds=self.timeout_seconds,
        )
        await self._transport.publish(presence_channel(info.pairing_id), message)

    async def _leave(self, info: PresenceInfo) -> None:
        left = replace(info, state=PresenceState.OFFLINE, sent_at=utc_now())
        await self._transport.delete_member(presence_member_key(info.pairing_id, info.user_id))
        await self._transport.publish(
            presence_channel(info.pairing_id),
            left.to_message(event=PRESENCE_EVENT_LEAVE),
        )
        logger.info("presence_untracked", pairing_id=str(info.pairing_id))
