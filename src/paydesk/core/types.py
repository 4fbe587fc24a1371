"""Type aliases used across the Paydesk platform."""

from __future__ import annotations

from typing import Any, Callable

JsonDict = dict[str, Any]

Unsubscribe = Callable[[], None]
SnapshotCallback = Callable[[list[JsonDict]], None]
ErrorCallback = Callable[[Exception], None]
