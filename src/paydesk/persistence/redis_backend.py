"""Redis pub/sub change feed implementing IChangeFeed."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

import redis
import redis.asyncio as aioredis

from paydesk.core.exceptions import StoreError
from paydesk.core.types import ErrorCallback, Unsubscribe

logger = logging.getLogger(__name__)


class RedisChangeFeed:
    """Production IChangeFeed: one Redis channel per collection.

    Messages carry the id of the document that changed. Subscribers run as
    tasks on the current event loop; the returned function cancels them.
    """

    def __init__(self, host: str = "localhost", port: int = 6379, db: int = 0,
                 channel_prefix: str = "paydesk:changes:",
                 client: redis.Redis | None = None,
                 async_client: aioredis.Redis | None = None) -> None:
        self._channel_prefix = channel_prefix
        self._client = client or redis.Redis(
            host=host, port=port, db=db, decode_responses=True,
        )
        self._async_client = async_client or aioredis.Redis(
            host=host, port=port, db=db, decode_responses=True,
        )

    def channel(self, collection: str) -> str:
        return f"{self._channel_prefix}{collection}"

    def publish(self, collection: str, doc_id: str) -> None:
        try:
            self._client.publish(self.channel(collection), doc_id)
        except Exception as exc:
            raise StoreError(f"Redis PUBLISH failed for {collection!r}: {exc}") from exc

    def subscribe(self, collection: str, on_change: Callable[[str], None],
                  on_error: ErrorCallback) -> Unsubscribe:
        task = asyncio.get_running_loop().create_task(
            self._pump(self.channel(collection), on_change, on_error)
        )

        def unsubscribe() -> None:
            if not task.done():
                task.cancel()

        return unsubscribe

    async def _pump(self, channel: str, on_change: Callable[[str], None],
                    on_error: ErrorCallback) -> None:
        pubsub = self._async_client.pubsub()
        try:
            await pubsub.subscribe(channel)
            while True:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if message is None:
                    continue
                data = message["data"]
                if isinstance(data, bytes):
                    data = data.decode()
                try:
                    on_change(str(data))
                except Exception:
                    logger.exception("Change handler failed for %s", channel)
        except Exception as exc:
            logger.warning("Redis subscription on %s failed: %s", channel, exc)
            on_error(StoreError(f"Redis SUBSCRIBE failed for {channel!r}: {exc}"))
        finally:
            await pubsub.aclose()
