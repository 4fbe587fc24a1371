"""Unit tests for RedisChangeFeed using fakeredis."""

from __future__ import annotations

import asyncio

import fakeredis
import fakeredis.aioredis
import pytest

from paydesk.core.exceptions import StoreError
from paydesk.persistence.redis_backend import RedisChangeFeed
from tests.fakes import wait_for


@pytest.fixture
def fake_server():
    return fakeredis.FakeServer()


@pytest.fixture
def client(fake_server):
    return fakeredis.FakeRedis(server=fake_server, decode_responses=True)


@pytest.fixture
def feed(fake_server, client):
    return RedisChangeFeed(
        channel_prefix="test:changes:",
        client=client,
        async_client=fakeredis.aioredis.FakeRedis(server=fake_server, decode_responses=True),
    )


async def _publish_when_subscribed(client, channel: str, message: str) -> None:
    # PUBLISH returns the receiver count; 0 means the pump has not subscribed yet
    for _ in range(200):
        if client.publish(channel, message):
            return
        await asyncio.sleep(0.01)
    raise AssertionError(f"nobody subscribed to {channel}")


class TestPublish:
    def test_publishes_on_collection_channel(self, feed, client):
        pubsub = client.pubsub()
        pubsub.subscribe("test:changes:checks")
        pubsub.get_message(timeout=1)  # subscribe confirmation

        feed.publish("checks", "chk-1")
        message = pubsub.get_message(ignore_subscribe_messages=True, timeout=1)
        assert message["data"] == "chk-1"

    def test_channel_name(self, feed):
        assert feed.channel("clients") == "test:changes:clients"


class TestSubscribe:
    async def test_delivers_doc_ids(self, feed, client):
        received: list[str] = []
        unsubscribe = feed.subscribe("checks", received.append, pytest.fail)

        await _publish_when_subscribed(client, "test:changes:checks", "chk-7")
        await wait_for(lambda: received == ["chk-7"])
        unsubscribe()

    async def test_ignores_other_collections(self, feed, client):
        received: list[str] = []
        unsubscribe = feed.subscribe("checks", received.append, pytest.fail)

        client.publish("test:changes:clients", "cl-1")
        await _publish_when_subscribed(client, "test:changes:checks", "chk-1")
        await wait_for(lambda: len(received) == 1)
        assert received == ["chk-1"]
        unsubscribe()

    async def test_unsubscribe_stops_delivery(self, feed, client):
        received: list[str] = []
        unsubscribe = feed.subscribe("checks", received.append, pytest.fail)
        await _publish_when_subscribed(client, "test:changes:checks", "chk-1")
        await wait_for(lambda: len(received) == 1)

        unsubscribe()
        await wait_for(lambda: client.publish("test:changes:checks", "chk-2") == 0)
        await asyncio.sleep(0.05)
        assert received == ["chk-1"]


class TestErrorWrapping:
    def test_publish_wraps_redis_error(self):
        feed = RedisChangeFeed.__new__(RedisChangeFeed)
        feed._channel_prefix = "x:"
        feed._client = None  # will cause AttributeError -> StoreError
        with pytest.raises(StoreError):
            feed.publish("checks", "c1")
