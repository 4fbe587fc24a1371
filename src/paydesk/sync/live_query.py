"""LiveQuery: one filter state per view, with data/loading/error derived from it."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional

from paydesk.core.types import JsonDict
from paydesk.models.query import QueryFilters
from paydesk.sync.synchronizer import ChunkedQuerySynchronizer, ChunkedSubscription

logger = logging.getLogger(__name__)


class LiveQuery:
    """Live result set for one collection.

    The filter set is the single source of truth: changing it to a
    different value closes every open listener before the new ones are
    opened, and results from the old subscription are discarded.
    Setting an equal filter set is a no-op.
    """

    def __init__(
        self,
        synchronizer: ChunkedQuerySynchronizer,
        collection: str,
        filters: Mapping[str, Any] | QueryFilters | None = None,
        *,
        skip: bool = False,
        on_change: Optional[Callable[[LiveQuery], None]] = None,
    ) -> None:
        self._sync = synchronizer
        self.collection = collection
        self._on_change = on_change
        self._filters: QueryFilters | None = None
        self._skip = skip
        self._subscription: ChunkedSubscription | None = None

        self.data: list[JsonDict] = []
        self.loading = True
        self.error: Exception | None = None

        self.set_filters(filters, skip=skip)

    @property
    def filters(self) -> QueryFilters | None:
        return self._filters

    def set_filters(self, filters: Mapping[str, Any] | QueryFilters | None, *, skip: bool = False) -> bool:
        """Point the query at a new filter set. Returns True if it resubscribed."""
        parsed = filters if isinstance(filters, QueryFilters) else QueryFilters.from_mapping(filters)
        if self._subscription is not None and parsed == self._filters and skip == self._skip:
            return False
        self._filters = parsed
        self._skip = skip
        self._restart()
        return True

    def refetch(self) -> None:
        """Tear down and reopen the current subscription."""
        self._restart()

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    def _restart(self) -> None:
        self.close()
        self.loading = True
        self.error = None

        holder: list[ChunkedSubscription] = []

        def current() -> bool:
            # callbacks can fire during open(), before holder is filled
            return not holder or holder[0] is self._subscription

        def on_update(docs: list[JsonDict]) -> None:
            if not current():
                return
            self.data = docs
            self.error = None
            self.loading = False
            self._notify()

        def on_error(exc: Exception) -> None:
            if not current():
                return
            self.error = exc
            self.loading = False
            self._notify()

        subscription = self._sync.open(
            self.collection, self._filters, on_update, on_error, skip=self._skip,
        )
        holder.append(subscription)
        self._subscription = subscription

    def _notify(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self)
        except Exception:
            logger.exception("LiveQuery change handler failed for %s", self.collection)
