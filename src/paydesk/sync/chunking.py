"""Helpers for splitting "in" filters and merging chunk results."""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Sequence

from paydesk.core.types import JsonDict

logger = logging.getLogger(__name__)


def chunk_count(total: int, size: int) -> int:
    return math.ceil(total / size) if total else 0


def chunk_values(values: Sequence[Any], size: int) -> list[tuple[Any, ...]]:
    """Split ``values`` into consecutive groups of at most ``size``."""
    if size < 1:
        raise ValueError(f"chunk size must be positive, got {size}")
    return [tuple(values[i:i + size]) for i in range(0, len(values), size)]


def merge_documents(results: Iterable[Iterable[JsonDict]]) -> list[JsonDict]:
    """Concatenate chunk results and drop duplicate ids, last write wins.

    A duplicate keeps the position of its first occurrence. Documents
    without an id are never treated as duplicates of each other.
    """
    merged: dict[Any, JsonDict] = {}
    missing = 0
    for docs in results:
        for doc in docs:
            doc_id = doc.get("id")
            if doc_id is None:
                missing += 1
                merged[object()] = doc
            else:
                merged[doc_id] = doc
    if missing:
        logger.warning("Merged %d document(s) without an id", missing)
    return list(merged.values())
