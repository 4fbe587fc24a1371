"""In-memory backends for unit tests and local runs: dict-backed fakes."""

from __future__ import annotations

import asyncio
import copy
import itertools
from dataclasses import dataclass
from typing import Callable, Optional

from paydesk.core.exceptions import ArchiveError
from paydesk.core.types import ErrorCallback, JsonDict, SnapshotCallback, Unsubscribe
from paydesk.models.query import DocumentQuery

QueryPredicate = Callable[[str, DocumentQuery], bool]


@dataclass
class _Listener:
    collection: str
    query: DocumentQuery
    on_snapshot: SnapshotCallback
    on_error: ErrorCallback
    loop: asyncio.AbstractEventLoop


@dataclass
class _FetchFailure:
    error: Exception
    when: Optional[QueryPredicate]
    remaining: Optional[int]


class MemoryDocumentStore:
    """Dict-backed IDocumentStore.

    Listeners get an initial snapshot and one snapshot per matching write,
    delivered with ``call_soon`` on the loop they were opened from.
    Counters and failure injection are there for tests.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, JsonDict]] = {}
        self._listeners: dict[int, _Listener] = {}
        self._ids = itertools.count(1)
        self._fetch_failures: list[_FetchFailure] = []
        self.listen_calls: list[tuple[str, DocumentQuery]] = []
        self.fetch_calls: list[tuple[str, DocumentQuery]] = []

    # ---- writes ----

    def put(self, collection: str, doc: JsonDict) -> None:
        if "id" not in doc:
            raise ValueError("document needs an 'id'")
        self._collections.setdefault(collection, {})[str(doc["id"])] = copy.deepcopy(doc)
        self._notify(collection)

    def put_many(self, collection: str, docs: list[JsonDict]) -> None:
        for doc in docs:
            self._collections.setdefault(collection, {})[str(doc["id"])] = copy.deepcopy(doc)
        self._notify(collection)

    # ---- reads ----

    def query(self, collection: str, query: DocumentQuery) -> list[JsonDict]:
        return [
            copy.deepcopy(doc) for doc in self._collections.get(collection, {}).values()
            if query.matches(doc)
        ]

    async def fetch(self, collection: str, query: DocumentQuery) -> list[JsonDict]:
        self.fetch_calls.append((collection, query))
        failure = self._take_failure(collection, query)
        await asyncio.sleep(0)
        if failure is not None:
            raise failure
        return self.query(collection, query)

    def listen(
        self,
        collection: str,
        query: DocumentQuery,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        listener_id = next(self._ids)
        listener = _Listener(collection, query, on_snapshot, on_error, asyncio.get_running_loop())
        self._listeners[listener_id] = listener
        self.listen_calls.append((collection, query))
        listener.loop.call_soon(self._deliver, listener_id)

        def unsubscribe() -> None:
            self._listeners.pop(listener_id, None)

        return unsubscribe

    # ---- test hooks ----

    @property
    def open_listeners(self) -> int:
        return len(self._listeners)

    def fail_fetch(self, error: Exception, *, when: Optional[QueryPredicate] = None,
                   times: Optional[int] = 1) -> None:
        """Make matching fetches raise ``error`` (``times=None`` means forever)."""
        self._fetch_failures.append(_FetchFailure(error, when, times))

    def break_listeners(self, collection: str, error: Exception) -> None:
        """Deliver ``error`` to every open listener on ``collection``."""
        for listener_id, listener in list(self._listeners.items()):
            if listener.collection == collection:
                listener.loop.call_soon(self._deliver_error, listener_id, error)

    # ---- internals ----

    def _take_failure(self, collection: str, query: DocumentQuery) -> Optional[Exception]:
        for failure in self._fetch_failures:
            if failure.when is not None and not failure.when(collection, query):
                continue
            if failure.remaining is not None:
                failure.remaining -= 1
                if failure.remaining <= 0:
                    self._fetch_failures.remove(failure)
            return failure.error
        return None

    def _notify(self, collection: str) -> None:
        for listener_id, listener in list(self._listeners.items()):
            if listener.collection == collection:
                listener.loop.call_soon(self._deliver, listener_id)

    def _deliver(self, listener_id: int) -> None:
        listener = self._listeners.get(listener_id)
        if listener is None:
            return
        listener.on_snapshot(self.query(listener.collection, listener.query))

    def _deliver_error(self, listener_id: int, error: Exception) -> None:
        listener = self._listeners.get(listener_id)
        if listener is None:
            return
        listener.on_error(error)


class MemoryChangeFeed:
    """Synchronous IChangeFeed for unit tests."""

    def __init__(self) -> None:
        self._subscribers: dict[int, tuple[str, Callable[[str], None]]] = {}
        self._ids = itertools.count(1)
        self.published: list[tuple[str, str]] = []

    def publish(self, collection: str, doc_id: str) -> None:
        self.published.append((collection, doc_id))
        for sub_collection, on_change in list(self._subscribers.values()):
            if sub_collection == collection:
                on_change(doc_id)

    def subscribe(self, collection: str, on_change: Callable[[str], None],
                  on_error: ErrorCallback) -> Unsubscribe:
        sub_id = next(self._ids)
        self._subscribers[sub_id] = (collection, on_change)
        return lambda: self._subscribers.pop(sub_id, None)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)


class MemoryReportArchive:
    """Dict-backed IReportArchive for unit tests."""

    def __init__(self, prefix: str = "reports/") -> None:
        self._prefix = prefix
        self._objects: dict[str, bytes] = {}

    def save(self, name: str, data: bytes) -> str:
        key = f"{self._prefix}{name}"
        self._objects[key] = data
        return key

    def load(self, key: str) -> bytes:
        try:
            return self._objects[key]
        except KeyError as exc:
            raise ArchiveError(f"No archived report at {key!r}") from exc

    def list_reports(self) -> list[str]:
        return sorted(k for k in self._objects if k.startswith(self._prefix))
