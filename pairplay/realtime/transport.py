from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import structlog
from redis.asyncio import Redis
from redis.asyncio.client import PubSub

logger = structlog.get_logger(__name__)

MessageHandler = Callable[[str, dict[str, Any]], Awaitable[None]]


class TransportSubscription(Protocol):
    async def close(self) -> None: ...


class RealtimeTransport(Protocol):
    async def publish(self, channel: str, payload: dict[str, Any]) -> None: ...

    async def subscribe(self, channel: str, handler: MessageHandler) -> TransportSubscription: ...

    async def psubscribe(self, pattern: str, handler: MessageHandler) -> TransportSubscription: ...

    async def put_member(self, key: str, payload: dict[str, Any], *, ttl_seconds: float) -> None: ...

    async def delete_member(self, key: str) -> None: ...

    async def list_members(self, pattern: str) -> list[dict[str, Any]]: ...


def _decode(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


class RedisSubscription:
    def __init__(self, pubsub: PubSub, task: asyncio.Task[None]) -> None:
        self._pubsub = pubsub
        self._task = task
        self._closed = False

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._task is asyncio.current_task():
            # Closed from inside its own handler.
            await self._pubsub.aclose()
            self._task.cancel()
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        await self._pubsub.aclose()


class RedisTransport:
    """Pub/sub channels plus TTL keys on one Redis connection pool."""

    def __init__(self, redis_client: Redis) -> None:
        self._redis = redis_client

    @classmethod
    def from_url(cls, redis_url: str) -> RedisTransport:
        return cls(Redis.from_url(redis_url))

    async def publish(self, channel: str, payload: dict[str, Any]) -> None:
        await self._redis.publish(channel, json.dumps(payload, default=str))

    async def subscribe(self, channel: str, handler: MessageHandler) -> RedisSubscription:
        pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
        await pubsub.subscribe(channel)
        task = asyncio.create_task(self._pump(pubsub, handler), name=f"realtime:{channel}")
        return RedisSubscription(pubsub, task)

    async def psubscribe(self, pattern: str, handler: MessageHandler) -> RedisSubscription:
        pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
        await pubsub.psubscribe(pattern)
        task = asyncio.create_task(self._pump(pubsub, handler), name=f"realtime:{pattern}")
        return RedisSubscription(pubsub, task)

    async def put_member(self, key: str, payload: dict[str, Any], *, ttl_seconds: float) -> None:
        await self._redis.set(
            key,
            json.dumps(payload, default=str),
            px=max(1, int(ttl_seconds * 1000)),
        )

    async def delete_member(self, key: str) -> None:
        await self._redis.delete(key)

    async def list_members(self, pattern: str) -> list[dict[str, Any]]:
        keys = [key async for key in self._redis.scan_iter(match=pattern)]
        if not keys:
            return []
        members: list[dict[str, Any]] = []
        for raw_value in await self._redis.mget(keys):
            if raw_value is None:
                continue
            try:
                members.append(json.loads(raw_value))
            except ValueError:
                logger.warning("realtime_member_payload_invalid", pattern=pattern)
        return members

    async def aclose(self) -> None:
        await self._redis.aclose()

    async def _pump(self, pubsub: PubSub, handler: MessageHandler) -> None:
        async for message in pubsub.listen():
            if message is None or message.get("type") not in {"message", "pmessage"}:
                continue
            channel = _decode(message["channel"])
            try:
                payload = json.loads(message["data"])
            except ValueError:
                logger.warning("realtime_message_invalid_json", channel=channel)
                continue
            if not isinstance(payload, dict):
                logger.warning("realtime_message_not_object", channel=channel)
                continue
            try:
                await handler(channel, payload)
            except Exception:
                logger.exception("realtime_handler_failed", channel=channel)
