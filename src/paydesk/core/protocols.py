"""Protocol interfaces for all Paydesk abstractions.

Layers talk to each other through these Protocols. Backends satisfy them
structurally and tests can check them with isinstance().
"""

from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable

from paydesk.core.types import ErrorCallback, JsonDict, SnapshotCallback, Unsubscribe
from paydesk.models.query import DocumentQuery


# ---------------------------------------------------------------------------
# Persistence: Document Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IDocumentStore(Protocol):
    """Remote document store with point-in-time reads and live listeners."""

    async def fetch(self, collection: str, query: DocumentQuery) -> list[JsonDict]: ...

    def listen(
        self,
        collection: str,
        query: DocumentQuery,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe: ...


# ---------------------------------------------------------------------------
# Persistence: Change Feed
# ---------------------------------------------------------------------------

@runtime_checkable
class IChangeFeed(Protocol):
    """Per-collection change notifications (Redis pub/sub or in-memory)."""

    def publish(self, collection: str, doc_id: str) -> None: ...

    def subscribe(
        self,
        collection: str,
        on_change: Callable[[str], None],
        on_error: ErrorCallback,
    ) -> Unsubscribe: ...


# ---------------------------------------------------------------------------
# Persistence: Report Archive
# ---------------------------------------------------------------------------

@runtime_checkable
class IReportArchive(Protocol):
    """S3-compatible storage for serialized report snapshots."""

    def save(self, name: str, data: bytes) -> str: ...

    def load(self, key: str) -> bytes: ...

    def list_reports(self) -> list[str]: ...


# ---------------------------------------------------------------------------
# Live queries
# ---------------------------------------------------------------------------

@runtime_checkable
class IQuerySynchronizer(Protocol):
    """Chunked live query over a single collection."""

    def subscribe(
        self,
        collection: str,
        filters: dict[str, Any],
        on_update: SnapshotCallback,
        on_error: ErrorCallback,
        *,
        skip: bool = False,
    ) -> Unsubscribe: ...
