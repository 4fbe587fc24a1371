"""Shared test doubles: memory backends, sample data and loop helpers."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Callable

from paydesk.persistence.memory_backend import (
    MemoryChangeFeed,
    MemoryDocumentStore,
    MemoryReportArchive,
)

SAMPLE_DATA = Path(__file__).resolve().parents[2] / "config" / "sample_data.json"


def load_sample_data() -> dict[str, list[dict[str, Any]]]:
    return json.loads(SAMPLE_DATA.read_text())


def seeded_store() -> MemoryDocumentStore:
    """Memory store holding the sample companies, clients, employees and checks."""
    store = MemoryDocumentStore()
    for collection, docs in load_sample_data().items():
        store.put_many(collection, docs)
    return store

async def settle(rounds: int = 25) -> None:
    """Let scheduled callbacks and merge tasks on the running loop finish."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll ``predicate`` until true; for backends that do work off the loop."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


__all__ = [
    "MemoryChangeFeed",
    "MemoryDocumentStore",
    "MemoryReportArchive",
    "load_sample_data",
    "seeded_store",
    "settle",
    "wait_for",
]
