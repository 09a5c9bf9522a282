"""Diagnostic overlay — shows each reload episode's outcome, one display at a time.

Observes the client's ``StateCell``.  A state change starts a new episode
only if its ``reload_started`` is strictly newer than the last episode shown;
anything older or empty is ignored.  For a new episode:

- warnings: the first one in full, then the rest as one-line summaries
- exception: the failure in full
- otherwise: a brief success indicator

Every display call goes through one ``OverlayQueue``.  The queue runs one
operation at a time, across episodes, so an older episode's displays always
finish before a newer episode's start.
"""

from __future__ import annotations

import asyncio
import sys
from collections import deque
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Protocol, TextIO, TypeAlias

from rekindle.diagnostics import CompileFailure, CompileWarning

if TYPE_CHECKING:
    from rekindle.client.state import ReloadState, StateCell
    from rekindle.observability.collector import HotloadCollector

DisplayOperation: TypeAlias = Callable[[], Awaitable[None]]


class OverlayDisplay(Protocol):
    """Renders diagnostics.  Each call returns once the display is complete."""

    async def show_warning(self, warning: CompileWarning) -> None: ...

    async def append_warning(self, warning: CompileWarning) -> None: ...

    async def show_exception(self, failure: CompileFailure) -> None: ...

    async def flash_success(self) -> None: ...


class ConsoleDisplay:
    """Writes overlay output to a text stream (stderr by default)."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    async def show_warning(self, warning: CompileWarning) -> None:
        lines = [f"  Compile warning: {warning.summary}"]
        if warning.excerpt:
            lines.append(_indent(warning.excerpt))
        self._write("\n".join(lines))

    async def append_warning(self, warning: CompileWarning) -> None:
        self._write(f"    also: {warning.summary}")

    async def show_exception(self, failure: CompileFailure) -> None:
        lines = [f"  Compile failed [{failure.tag}]: {failure.summary}"]
        if failure.excerpt:
            lines.append(_indent(failure.excerpt))
        self._write("\n".join(lines))

    async def flash_success(self) -> None:
        self._write("  Reloaded.")

    def _write(self, text: str) -> None:
        stream = self._stream if self._stream is not None else sys.stderr
        print(text, file=stream)


def _indent(text: str) -> str:
    return "\n".join(f"    {line}" for line in text.splitlines())


class OverlayQueue:
    """Serial task queue: explicit enqueue, drained one operation at a time.

    The drain task is started when the first operation arrives (on ``loop``,
    or the running loop if none was given) and exits when the queue is
    empty.  A failing operation is reported and the queue moves on.

    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._pending: deque[DisplayOperation] = deque()
        self._drainer: asyncio.Task[None] | None = None

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def busy(self) -> bool:
        return self._drainer is not None and not self._drainer.done()

    def enqueue(self, operation: DisplayOperation) -> None:
        self._pending.append(operation)
        if not self.busy:
            loop = self._loop if self._loop is not None else asyncio.get_running_loop()
            self._drainer = loop.create_task(self._drain())

    async def join(self) -> None:
        """Wait until every queued operation has completed."""
        while self.busy:
            assert self._drainer is not None
            await asyncio.shield(self._drainer)

    async def _drain(self) -> None:
        while self._pending:
            operation = self._pending.popleft()
            try:
                await operation()
            except Exception as exc:
                print(f"  Overlay error: {exc}", file=sys.stderr)


class DiagnosticOverlay:
    """Turns Reload State episodes into queued display operations.

    Args:
        state: The client's Reload State cell.
        display: Where diagnostics are rendered.
        queue: The serial display queue (shared if several overlays exist).
        collector: Optional event collector.

    """

    def __init__(
        self,
        state: StateCell,
        display: OverlayDisplay,
        *,
        queue: OverlayQueue | None = None,
        collector: HotloadCollector | None = None,
    ) -> None:
        self._state = state
        self._display = display
        self._queue = queue if queue is not None else OverlayQueue()
        self._collector = collector
        self._last_rendered = 0
        state.subscribe(self._on_state)

    @property
    def queue(self) -> OverlayQueue:
        return self._queue

    @property
    def last_rendered(self) -> int:
        """``reload_started`` of the newest episode taken for display."""
        return self._last_rendered

    def close(self) -> None:
        self._state.unsubscribe(self._on_state)

    def _on_state(self, old: ReloadState, new: ReloadState) -> None:
        started = new.reload_started
        if started is None or started <= self._last_rendered:
            return
        self._last_rendered = started

        if new.warnings:
            first, *rest = new.warnings
            self._enqueue("warning", started, lambda: self._display.show_warning(first))
            for warning in rest:
                self._enqueue(
                    "warning-summary", started,
                    lambda w=warning: self._display.append_warning(w),
                )
        elif new.exception is not None:
            failure = new.exception
            self._enqueue("exception", started, lambda: self._display.show_exception(failure))
        else:
            self._enqueue("success", started, self._display.flash_success)

        # The episode is captured by the queued operations above.
        self._state.clear()

    def _enqueue(self, kind: str, episode: int, show: DisplayOperation) -> None:
        async def operation() -> None:
            await show()
            if self._collector is not None:
                self._collector.record_display(kind, episode)

        self._queue.enqueue(operation)
