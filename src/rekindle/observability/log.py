"""Event log — bounded, thread-safe store of reload events.

Keeps the most recent ``ReloadEvent`` objects in a ring buffer so a session
can be inspected after the fact (what compiled, what was sent, what the
client actually reloaded).

Thread Safety:
    All methods are protected by a ``threading.Lock``.  The file watcher
    thread and the event loop may both record.

"""

import threading
from collections import deque
from typing import Any

from rekindle.observability.events import ReloadEvent


class EventLog:
    """Ring buffer of reload events with simple queries.

    Args:
        max_events: Maximum number of events to retain.

    """

    __slots__ = ("_events", "_lock", "_max_events")

    def __init__(self, max_events: int = 1_000) -> None:
        self._max_events = max_events
        self._events: deque[ReloadEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def append(self, event: ReloadEvent) -> None:
        with self._lock:
            self._events.append(event)

    def query(
        self,
        *,
        event_type: type | None = None,
        since_ns: int = 0,
        module: str | None = None,
        limit: int = 100,
    ) -> list[ReloadEvent]:
        """Return matching events, most recent first.

        Args:
            event_type: Only return events of this type.
            since_ns: Only return events recorded at or after this timestamp.
            module: Only return events whose ``modules``, ``requested`` or
                ``reloaded`` field contains this module id.
            limit: Maximum number of events to return.

        """
        with self._lock:
            snapshot = list(self._events)

        results: list[ReloadEvent] = []
        for event in reversed(snapshot):
            if len(results) >= limit:
                break
            if event_type is not None and not isinstance(event, event_type):
                continue
            if since_ns and event.timestamp_ns < since_ns:
                continue
            if module is not None and module not in _modules_of(event):
                continue
            results.append(event)
        return results

    def recent(self, n: int = 20) -> list[ReloadEvent]:
        """Return the N most recent events, oldest first."""
        with self._lock:
            items = list(self._events)
        return items[-n:]

    def clear(self) -> int:
        """Clear all events and return how many were dropped."""
        with self._lock:
            count = len(self._events)
            self._events.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def stats(self) -> dict[str, Any]:
        """Counts per event type."""
        with self._lock:
            events = list(self._events)

        by_type: dict[str, int] = {}
        for event in events:
            name = type(event).__name__
            by_type[name] = by_type.get(name, 0) + 1

        return {"total": len(events), "max_events": self._max_events, "by_type": by_type}


def _modules_of(event: ReloadEvent) -> frozenset[str]:
    names: set[str] = set()
    for attr in ("modules", "requested", "reloaded"):
        names.update(getattr(event, attr, ()))
    return frozenset(names)
