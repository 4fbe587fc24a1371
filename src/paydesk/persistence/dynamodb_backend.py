"""DynamoDB backend implementing IDocumentStore, with a change feed for live updates."""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from functools import reduce
from typing import Any, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import BotoCoreError, ClientError

from paydesk.core.exceptions import StoreError
from paydesk.core.protocols import IChangeFeed
from paydesk.core.types import ErrorCallback, JsonDict, SnapshotCallback, Unsubscribe
from paydesk.models.query import DocumentQuery

logger = logging.getLogger(__name__)


def _to_dynamodb(obj: Any) -> Any:
    """Convert floats to Decimal (DynamoDB rejects floats)."""
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _to_dynamodb(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_dynamodb(i) for i in obj]
    return obj


def _from_dynamodb(obj: Any) -> Any:
    """Turn integral Decimals back into ints; keep fractional values as Decimal."""
    if isinstance(obj, Decimal):
        return int(obj) if obj == obj.to_integral_value() else obj
    if isinstance(obj, dict):
        return {k: _from_dynamodb(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_from_dynamodb(i) for i in obj]
    return obj


def build_filter(query: DocumentQuery):
    """Translate a DocumentQuery into a boto3 condition (None for an unfiltered scan)."""
    conditions = [Attr(name).eq(_to_dynamodb(value)) for name, value in query.equals]
    if query.field_in is not None:
        conditions.append(Attr(query.field_in.name).is_in(_to_dynamodb(list(query.field_in.values))))
    if not conditions:
        return None
    return reduce(lambda left, right: left & right, conditions)


class DynamoDBDocumentStore:
    """Production IDocumentStore: one DynamoDB table per collection, hash key ``id``.

    DynamoDB has no push queries, so ``listen`` delivers an initial read and
    then re-reads whenever the change feed reports a write to the collection.
    Without a change feed, listeners only get the initial snapshot.
    """

    def __init__(self, table_prefix: str = "paydesk-", table_suffix: str = "",
                 region: str = "us-east-1", endpoint_url: str | None = None,
                 change_feed: Optional[IChangeFeed] = None) -> None:
        self._table_prefix = table_prefix
        self._table_suffix = table_suffix
        self._change_feed = change_feed
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._ddb = boto3.resource("dynamodb", **kwargs)

    def table_name(self, collection: str) -> str:
        return f"{self._table_prefix}{collection}{self._table_suffix}"

    def _table(self, collection: str):
        return self._ddb.Table(self.table_name(collection))

    # ---- reads ----

    def scan(self, collection: str, query: DocumentQuery) -> list[JsonDict]:
        """Blocking filtered scan across all pages."""
        kwargs: dict[str, Any] = {}
        condition = build_filter(query)
        if condition is not None:
            kwargs["FilterExpression"] = condition
        items: list[JsonDict] = []
        try:
            table = self._table(collection)
            while True:
                resp = table.scan(**kwargs)
                items.extend(_from_dynamodb(item) for item in resp.get("Items", []))
                last_key = resp.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"DynamoDB scan failed for {collection!r}: {exc}") from exc
        return items

    async def fetch(self, collection: str, query: DocumentQuery) -> list[JsonDict]:
        return await asyncio.to_thread(self.scan, collection, query)

    # ---- writes ----

    def put(self, collection: str, doc: JsonDict) -> None:
        if "id" not in doc:
            raise ValueError("document needs an 'id'")
        try:
            self._table(collection).put_item(Item=_to_dynamodb(doc))
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"DynamoDB put failed for {collection!r}: {exc}") from exc
        if self._change_feed is not None:
            self._change_feed.publish(collection, str(doc["id"]))

    # ---- live ----

    def listen(
        self,
        collection: str,
        query: DocumentQuery,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        listener = _TableListener(self, collection, query, on_snapshot, on_error)
        listener.start(self._change_feed)
        return listener.close


class _TableListener:
    """Re-reads one query whenever its collection changes; reads never overlap."""

    def __init__(self, store: DynamoDBDocumentStore, collection: str, query: DocumentQuery,
                 on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> None:
        self._store = store
        self._collection = collection
        self._query = query
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._task: asyncio.Task[None] | None = None
        self._dirty = False
        self._closed = False
        self._unsubscribe_feed: Unsubscribe | None = None

    def start(self, change_feed: Optional[IChangeFeed]) -> None:
        if change_feed is not None:
            self._unsubscribe_feed = change_feed.subscribe(
                self._collection, self._on_change, self._on_feed_error,
            )
        self._refresh()

    def close(self) -> None:
        self._closed = True
        if self._unsubscribe_feed is not None:
            self._unsubscribe_feed()
            self._unsubscribe_feed = None
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def _on_change(self, doc_id: str) -> None:
        self._refresh()

    def _on_feed_error(self, exc: Exception) -> None:
        if not self._closed:
            self._on_error(exc)

    def _refresh(self) -> None:
        if self._closed:
            return
        if self._task is not None and not self._task.done():
            self._dirty = True
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            self._dirty = False
            try:
                docs = await self._store.fetch(self._collection, self._query)
            except Exception as exc:
                if self._closed:
                    return
                if not isinstance(exc, StoreError):
                    exc = StoreError(f"Listener read failed for {self._collection!r}: {exc}")
                logger.warning("Listener read failed for %s: %s", self._collection, exc)
                self._on_error(exc)
            else:
                if self._closed:
                    return
                self._on_snapshot(docs)
            if not self._dirty:
                return
