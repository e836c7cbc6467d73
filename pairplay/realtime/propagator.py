from __future__ import annotations

import asyncio
import inspect
import itertools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Union
from uuid import UUID

import structlog

from pairplay.realtime.events import SlotChange
from pairplay.realtime.publisher import PAIRING_CHANNEL_PATTERN, pairing_channel
from pairplay.realtime.transport import RealtimeTransport, TransportSubscription

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class PairingScope:
    pairing_id: UUID


@dataclass(frozen=True, slots=True)
class UserScope:
    user_id: UUID


SubscriptionScope = Union[PairingScope, UserScope]
ChangeCallback = Callable[[SlotChange], Union[Awaitable[None], None]]
PairingMembersLookup = Callable[[UUID], Awaitable[Union[frozenset[UUID], None]]]
Unsubscribe = Callable[[], Awaitable[None]]


@dataclass(slots=True)
class _ScopeStream:
    callbacks: dict[int, ChangeCallback] = field(default_factory=dict)
    subscription: TransportSubscription | None = None


class ChangePropagator:
    """Fans feed messages out to subscribers, one transport stream per scope."""

    def __init__(
        self,
        transport: RealtimeTransport,
        *,
        pairing_members: PairingMembersLookup | None = None,
    ) -> None:
        self._transport = transport
        self._pairing_members = pairing_members
        self._streams: dict[SubscriptionScope, _ScopeStream] = {}
        self._members_cache: dict[UUID, frozenset[UUID]] = {}
        self._tokens = itertools.count(1)
        self._lock = asyncio.Lock()

    @property
    def active_scopes(self) -> frozenset[SubscriptionScope]:
        return frozenset(self._streams)

    def subscriber_count(self, scope: SubscriptionScope) -> int:
        stream = self._streams.get(scope)
        return 0 if stream is None else len(stream.callbacks)

    async def subscribe(self, scope: SubscriptionScope, on_change: ChangeCallback) -> Unsubscribe:
        if isinstance(scope, UserScope) and self._pairing_members is None:
            raise ValueError("user scope subscriptions need a pairing membership lookup")

        async with self._lock:
            stream = self._streams.get(scope)
            if stream is None:
                stream = _ScopeStream()
                stream.subscription = await self._open_stream(scope)
                self._streams[scope] = stream
                logger.info("realtime_stream_opened", scope=repr(scope))
            token = next(self._tokens)
            stream.callbacks[token] = on_change

        async def unsubscribe() -> None:
            await self._release(scope, token)

        return unsubscribe

    async def close(self) -> None:
        async with self._lock:
            streams = list(self._streams.items())
            self._streams.clear()
        for scope, stream in streams:
            stream.callbacks.clear()
            if stream.subscription is None:
                continue
            try:
                await stream.subscription.close()
            except Exception:
                logger.warning("realtime_stream_close_failed", scope=repr(scope), exc_info=True)
                continue
            logger.info("realtime_stream_closed", scope=repr(scope))

    async def _release(self, scope: SubscriptionScope, token: int) -> None:
        async with self._lock:
            stream = self._streams.get(scope)
            if stream is None or stream.callbacks.pop(token, None) is None:
                return
            if stream.callbacks:
                return
            del self._streams[scope]
            if stream.subscription is not None:
                await stream.subscription.close()
        logger.info("realtime_stream_closed", scope=repr(scope))

    async def _open_stream(self, scope: SubscriptionScope) -> TransportSubscription:
        async def handle(channel: str, payload: dict[str, Any]) -> None:
            await self._on_message(scope, channel, payload)

        if isinstance(scope, PairingScope):
            return await self._transport.subscribe(pairing_channel(scope.pairing_id), handle)
        return await self._transport.psubscribe(PAIRING_CHANNEL_PATTERN, handle)

    async def _on_message(
        self,
        scope: SubscriptionScope,
        channel: str,
        payload: dict[str, Any],
    ) -> None:
        try:
            change = SlotChange.from_message(payload)
        except ValueError as exc:
            logger.warning("slot_change_malformed", channel=channel, error=str(exc))
            return

        if isinstance(scope, PairingScope) and change.pairing_id != scope.pairing_id:
            return
        if isinstance(scope, UserScope) and not await self._is_member(
            change.pairing_id, scope.user_id
        ):
            return

        stream = self._streams.get(scope)
        if stream is None:
            return
        for callback in list(stream.callbacks.values()):
            try:
                result = callback(change)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "slot_change_callback_failed",
                    slot_id=str(change.slot_id),
                    pairing_id=str(change.pairing_id),
                )

    async def _is_member(self, pairing_id: UUID, user_id: UUID) -> bool:
        members = self._members_cache.get(pairing_id)
        if members is None:
            if self._pairing_members is None:
                return False
            members = await self._pairing_members(pairing_id)
            if members is None:
                return False
            # Counterpart is immutable once accepted.
            if len(members) == 2:
                self._members_cache[pairing_id] = members
        return user_id in members
