from __future__ import annotations

import asyncio
import json
from typing import Any

from pairplay.realtime.transport import RedisTransport


class _StubPubSub:
    def __init__(self, messages: list[dict[str, Any]]) -> None:
        self.messages = messages
        self.channels: list[str] = []
        self.patterns: list[str] = []
        self.closed = False

    async def subscribe(self, channel: str) -> None:
        self.channels.append(channel)

    async def psubscribe(self, pattern: str) -> None:
        self.patterns.append(pattern)

    async def listen(self):
        for message in self.messages:
            yield message
        await asyncio.Event().wait()

    async def aclose(self) -> None:
        self.closed = True


class _StubRedis:
    def __init__(self, messages: list[dict[str, Any]] | None = None) -> None:
        self.pubsub_instance = _StubPubSub(messages or [])
        self.published: list[tuple[str, str]] = []
        self.values: dict[str, Any] = {}
        self.expirations: dict[str, int] = {}

    def pubsub(self, *, ignore_subscribe_messages: bool) -> _StubPubSub:
        assert ignore_subscribe_messages is True
        return self.pubsub_instance

    async def publish(self, channel: str, data: str) -> int:
        self.published.append((channel, data))
        return 1

    async def set(self, key: str, value: str, *, px: int) -> None:
        self.values[key] = value
        self.expirations[key] = px

    async def delete(self, key: str) -> None:
        self.values.pop(key, None)

    async def scan_iter(self, *, match: str):
        prefix = match.rstrip("*")
        for key in list(self.values):
            if key.startswith(prefix):
                yield key

    async def mget(self, keys: list[str]) -> list[Any]:
        return [self.values.get(key) for key in keys]


async def test_publish_and_member_keys_are_json_with_millisecond_ttl() -> None:
    redis = _StubRedis()
    transport = RedisTransport(redis)

    await transport.publish("game_slots:pairing:1", {"position": 1})
    await transport.put_member("presence:pairing:1:member:a", {"state": "online"}, ttl_seconds=45)
    redis.values["presence:pairing:1:member:b"] = "not-json"
    redis.values["presence:pairing:1:member:c"] = json.dumps({"state": "away"}).encode()

    assert redis.published == [("game_slots:pairing:1", '{"position": 1}')]
    assert redis.expirations["presence:pairing:1:member:a"] == 45_000
    members = await transport.list_members("presence:pairing:1:member:*")
    assert sorted(member["state"] for member in members) == ["away", "online"]

    await transport.delete_member("presence:pairing:1:member:a")
    assert "presence:pairing:1:member:a" not in redis.values


async def test_subscription_pumps_valid_messages_until_closed() -> None:
    messages = [
        {"type": "message", "channel": b"game_slots:pairing:1", "data": "{broken"},
        {"type": "message", "channel": b"game_slots:pairing:1", "data": "[1, 2]"},
        {"type": "message", "channel": b"game_slots:pairing:1", "data": '{"fail": true}'},
        {"type": "pmessage", "channel": b"game_slots:pairing:1", "data": '{"position": 2}'},
    ]
    redis = _StubRedis(messages)
    transport = RedisTransport(redis)
    received: list[tuple[str, dict[str, Any]]] = []
    done = asyncio.Event()

    async def handler(channel: str, payload: dict[str, Any]) -> None:
        if payload.get("fail"):
            raise RuntimeError("handler failed")
        received.append((channel, payload))
        done.set()

    subscription = await transport.psubscribe("game_slots:pairing:*", handler)
    await asyncio.wait_for(done.wait(), timeout=1)
    await subscription.close()

    assert redis.pubsub_instance.patterns == ["game_slots:pairing:*"]
    assert received == [("game_slots:pairing:1", {"position": 2})]
    assert redis.pubsub_instance.closed is True
