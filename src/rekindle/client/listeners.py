"""Listener registry — lifecycle event delivery keyed by owner and event name.

At most one handler exists per ``(key, event)``.  Registering again under
the same pair replaces the previous handler, so a module that re-registers
its listeners every time it is reloaded never receives an event twice.
"""

from __future__ import annotations

import sys
from collections.abc import Mapping
from typing import Any

from rekindle._types import EventName, Handler, ListenerKey

BEFORE_RELOAD: EventName = "before-reload"
AFTER_RELOAD: EventName = "after-reload"
COMPILE_WARNINGS: EventName = "compile-warnings"
COMPILE_EXCEPTION: EventName = "compile-exception"

EVENTS: frozenset[str] = frozenset({BEFORE_RELOAD, AFTER_RELOAD, COMPILE_WARNINGS, COMPILE_EXCEPTION})


class ListenerRegistry:
    """Maps ``(key, event)`` to a single handler."""

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: dict[tuple[ListenerKey, str], Handler] = {}

    def __len__(self) -> int:
        return len(self._handlers)

    def listen(self, key: ListenerKey, event: str, handler: Handler) -> None:
        """Register ``handler`` for ``event`` under ``key``, replacing any previous one."""
        if event not in EVENTS:
            msg = f"unknown event {event!r}; expected one of {sorted(EVENTS)}"
            raise ValueError(msg)
        self.unlisten(key, event)
        self._handlers[(key, event)] = handler

    def unlisten(self, key: ListenerKey, event: str) -> bool:
        """Remove the handler for ``(key, event)``.  Returns whether one existed."""
        return self._handlers.pop((key, event), None) is not None

    def unlisten_all(self, key: ListenerKey) -> int:
        """Remove every handler registered under ``key``."""
        pairs = [pair for pair in self._handlers if pair[0] == key]
        for pair in pairs:
            del self._handlers[pair]
        return len(pairs)

    def handlers(self, event: str) -> list[Handler]:
        return [h for (_, name), h in self._handlers.items() if name == event]

    def emit(self, event: str, detail: Mapping[str, Any]) -> int:
        """Deliver ``detail`` to every handler of ``event``.

        A failing handler is reported and skipped; delivery to the others
        continues.  Returns the number of handlers that completed.

        """
        delivered = 0
        for handler in self.handlers(event):
            try:
                handler(detail)
            except Exception as exc:
                _report(f"  Listener error ({event}): {exc}")
            else:
                delivered += 1
        return delivered


def _report(message: str) -> None:
    try:
        print(message, file=sys.stderr)
    except (OSError, ValueError):
        pass
