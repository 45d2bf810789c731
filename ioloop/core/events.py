from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from typing import Any, Literal

EventType = Literal[
    "data",
    "close",
    "drain",
    "accept",
    "error",
]

Callback = Callable[..., object]


class EventEmitter:
    """Synchronous publish/subscribe keyed by event type.

    Contract:
      - `subscribe(event_type, callback)` appends; duplicates are kept and all run.
      - `publish(event_type, *payload)` runs callbacks in subscription order on the
        caller's stack. Return values are dropped.
      - Exceptions raised by a callback are not caught here.

    Event types are plain strings; the built-in ones are listed in `EventType`, but
    applications may publish their own.
    """

    def __init__(self) -> None:
        self._callbacks: dict[str, list[Callback]] = defaultdict(list)

    def subscribe(self, event_type: str, callback: Callback) -> "EventEmitter":
        self._callbacks[event_type].append(callback)
        return self

    def unsubscribe(self, event_type: str, callback: Callback) -> "EventEmitter":
        callbacks = self._callbacks.get(event_type)
        if callbacks and callback in callbacks:
            callbacks.remove(callback)
        return self

    def publish(self, event_type: str, *payload: Any) -> None:
        callbacks = self._callbacks.get(event_type)
        if not callbacks:
            return

        # Snapshot: callbacks added while publishing run on the next publish.
        for callback in list(callbacks):
            callback(*payload)

    def listener_count(self, event_type: str) -> int:
        return len(self._callbacks.get(event_type, ()))
