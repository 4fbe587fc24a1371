"""Chunked live queries over a document store with a cap on "in" filter size.

A filter set with an array larger than the store's cap is split into
chunks. Each chunk gets its own live listener; whenever any of them fires,
every chunk is re-fetched once (point-in-time reads joined with
``asyncio.gather``) and the merged, de-duplicated result replaces the
previous one in a single ``on_update`` call. Partial merges are never
emitted: if any chunk fetch fails the caller gets ``PartialChunkFailure``
and the last good result stands.

Everything runs on one event loop. Store callbacks and merge cycles
interleave but never run concurrently.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Mapping, Optional

from paydesk.core.exceptions import PaydeskError, PartialChunkFailure, SubscriptionError
from paydesk.core.protocols import IDocumentStore
from paydesk.core.types import ErrorCallback, JsonDict, SnapshotCallback, Unsubscribe
from paydesk.models.query import DocumentQuery, QueryFilters
from paydesk.sync.chunking import chunk_values, merge_documents

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 10

LoadingCallback = Callable[[bool], None]


def _as_filters(filters: Mapping[str, Any] | QueryFilters | None) -> QueryFilters:
    if isinstance(filters, QueryFilters):
        return filters
    return QueryFilters.from_mapping(filters)


def plan_queries(filters: QueryFilters, chunk_size: int) -> list[DocumentQuery]:
    """One store query per chunk of the array filter (a single query if none)."""
    if not filters.has_array:
        return [filters.to_query()]
    return [filters.to_query(chunk) for chunk in chunk_values(filters.in_values, chunk_size)]


async def fetch_chunked(
    store: IDocumentStore,
    collection: str,
    filters: Mapping[str, Any] | QueryFilters | None = None,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> list[JsonDict]:
    """Point-in-time read of a possibly oversized filter set.

    Raises:
        PartialChunkFailure: If any chunk fetch fails.
    """
    parsed = _as_filters(filters)
    if parsed.is_empty_array:
        return []
    queries = plan_queries(parsed, chunk_size)
    results = await asyncio.gather(
        *(store.fetch(collection, query) for query in queries), return_exceptions=True,
    )
    _raise_failures(collection, queries, results)
    return merge_documents(results)  # type: ignore[arg-type]


def _raise_failures(collection: str, queries: list[DocumentQuery], results: list[Any]) -> None:
    failed = [
        (query, result) for query, result in zip(queries, results)
        if isinstance(result, BaseException)
    ]
    if failed:
        chunks = [query.field_in.values if query.field_in else () for query, _ in failed]
        raise PartialChunkFailure(collection, chunks, failed[0][1])


class ChunkedSubscription:
    """One caller's live view of a collection; owns all of its chunk listeners."""

    def __init__(
        self,
        store: IDocumentStore,
        collection: str,
        filters: QueryFilters,
        on_update: SnapshotCallback,
        on_error: ErrorCallback,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        on_loading: Optional[LoadingCallback] = None,
    ) -> None:
        self._store = store
        self._collection = collection
        self._filters = filters
        self._on_update = on_update
        self._on_error = on_error
        self._on_loading = on_loading
        self._queries = plan_queries(filters, chunk_size)
        self._listeners: list[Unsubscribe] = []
        self._merge_task: asyncio.Task[None] | None = None
        self._dirty = False
        self._closed = False
        self.data: list[JsonDict] = []

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def chunk_count(self) -> int:
        return len(self._queries)

    def start(self, *, skip: bool = False) -> None:
        if skip or self._filters.is_empty_array:
            self._emit([])
            return

        self._set_loading(True)
        if len(self._queries) == 1:
            callback: SnapshotCallback = self._on_single_snapshot
        else:
            callback = self._on_chunk_snapshot
            logger.debug(
                "Chunking %s on %r into %d listeners",
                self._collection, self._filters.in_field, len(self._queries),
            )
        for query in self._queries:
            self._listeners.append(
                self._store.listen(self._collection, query, callback, self._on_listener_error)
            )

    def close(self) -> None:
        """Stop every chunk listener and drop any in-flight merge. Idempotent."""
        if self._closed:
            return
        self._closed = True
        listeners, self._listeners = self._listeners, []
        for unsubscribe in listeners:
            unsubscribe()
        if self._merge_task is not None and not self._merge_task.done():
            self._merge_task.cancel()
        self._merge_task = None
        logger.debug("Closed %d listener(s) on %s", len(listeners), self._collection)

    # ---- listener callbacks ----

    def _on_single_snapshot(self, docs: list[JsonDict]) -> None:
        if self._closed:
            return
        self._emit(merge_documents([docs]))

    def _on_chunk_snapshot(self, docs: list[JsonDict]) -> None:
        if self._closed:
            return
        if self._merge_task is not None and not self._merge_task.done():
            self._dirty = True
            return
        self._merge_task = asyncio.get_running_loop().create_task(self._merge_cycle())

    def _on_listener_error(self, exc: Exception) -> None:
        if self._closed:
            return
        if not isinstance(exc, PaydeskError):
            exc = SubscriptionError(self._collection, str(exc))
        logger.warning("Listener error on %s: %s", self._collection, exc)
        self._fail(exc)

    # ---- merge cycle ----

    async def _merge_cycle(self) -> None:
        while True:
            self._dirty = False
            results = await asyncio.gather(
                *(self._store.fetch(self._collection, query) for query in self._queries),
                return_exceptions=True,
            )
            if self._closed:
                return
            try:
                _raise_failures(self._collection, self._queries, results)
            except PartialChunkFailure as exc:
                logger.warning("%s; keeping %d previously merged documents", exc, len(self.data))
                self._fail(exc)
            else:
                self._emit(merge_documents(results))  # type: ignore[arg-type]
            if not self._dirty:
                return

    # ---- delivery ----

    def _emit(self, docs: list[JsonDict]) -> None:
        self.data = docs
        self._set_loading(False)
        try:
            self._on_update(docs)
        except Exception:
            logger.exception("on_update callback failed for %s", self._collection)

    def _fail(self, exc: Exception) -> None:
        self._set_loading(False)
        try:
            self._on_error(exc)
        except Exception:
            logger.exception("on_error callback failed for %s", self._collection)

    def _set_loading(self, loading: bool) -> None:
        if self._on_loading is None:
            return
        try:
            self._on_loading(loading)
        except Exception:
            logger.exception("on_loading callback failed for %s", self._collection)


class ChunkedQuerySynchronizer:
    """Opens chunked live subscriptions against a document store."""

    def __init__(self, store: IDocumentStore, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._store = store
        self._chunk_size = chunk_size

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def open(
        self,
        collection: str,
        filters: Mapping[str, Any] | QueryFilters | None,
        on_update: SnapshotCallback,
        on_error: ErrorCallback,
        *,
        skip: bool = False,
        on_loading: Optional[LoadingCallback] = None,
    ) -> ChunkedSubscription:
        """Like :meth:`subscribe` but returns the subscription object."""
        subscription = ChunkedSubscription(
            self._store, collection, _as_filters(filters), on_update, on_error,
            chunk_size=self._chunk_size, on_loading=on_loading,
        )
        subscription.start(skip=skip)
        return subscription

    def subscribe(
        self,
        collection: str,
        filters: Mapping[str, Any] | QueryFilters | None,
        on_update: SnapshotCallback,
        on_error: ErrorCallback,
        *,
        skip: bool = False,
        on_loading: Optional[LoadingCallback] = None,
    ) -> Unsubscribe:
        """Subscribe to ``collection`` under ``filters``; returns the unsubscribe function.

        With ``skip`` an empty result is emitted immediately and nothing is opened.
        """
        return self.open(
            collection, filters, on_update, on_error, skip=skip, on_loading=on_loading,
        ).close

    async def fetch(
        self,
        collection: str,
        filters: Mapping[str, Any] | QueryFilters | None = None,
    ) -> list[JsonDict]:
        return await fetch_chunked(self._store, collection, filters, chunk_size=self._chunk_size)
