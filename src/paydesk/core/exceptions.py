"""Paydesk exception hierarchy."""

from __future__ import annotations

from decimal import Decimal
from typing import Any


class PaydeskError(Exception):
    """Base exception for all Paydesk errors."""


class InvalidQueryError(PaydeskError):
    """Filter set uses a shape the live query layer does not support."""


class StoreError(PaydeskError):
    """Document store read or change-feed operation failed."""


class ArchiveError(PaydeskError):
    """Report archive (S3) operation failed."""


class SubscriptionError(PaydeskError):
    """A live listener on the document store failed."""

    def __init__(self, collection: str, message: str) -> None:
        self.collection = collection
        super().__init__(f"Subscription on {collection!r} failed: {message}")


class PartialChunkFailure(PaydeskError):
    """One or more chunk re-fetches failed during a merge cycle.

    The merged result set is left at its last good state.
    """

    def __init__(self, collection: str, failed_chunks: list[tuple[Any, ...]],
                 cause: BaseException | None = None) -> None:
        self.collection = collection
        self.failed_chunks = failed_chunks
        self.cause = cause
        super().__init__(
            f"{len(failed_chunks)} chunk fetch(es) failed for {collection!r}: {cause}"
        )


class InconsistentTotalWarning(PaydeskError):
    """A check's computed pay does not match its stored amount.

    Diagnostic only. The aggregator logs it and keeps going with the
    computed value.
    """

    def __init__(self, check_id: str, stored: Decimal, computed: Decimal) -> None:
        self.check_id = check_id
        self.stored = stored
        self.computed = computed
        super().__init__(
            f"Check {check_id}: stored amount {stored} != computed {computed}"
        )

    @property
    def difference(self) -> Decimal:
        return self.stored - self.computed
