"""Client runtime — the object every outbound payload calls into.

A payload evaluated in the client refers to the runtime by name (``rekindle``
unless configured otherwise)::

    rekindle.reload_modules(['app.views', 'app.core'], {...})
    rekindle.compile_warnings([{'message': ..., 'line': 3, ...}])

``ClientRuntime.namespace()`` returns the globals such payloads expect, ready
for an ``InProcessChannel`` or any other evaluator running in the client.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from rekindle.client.engine import (
    DEFAULT_RESERVED,
    DEFAULT_RESERVED_PREFIXES,
    AfterReloadsHook,
    ImportlibLoader,
    ModuleLoader,
    ReloadEngine,
)
from rekindle.client.listeners import COMPILE_EXCEPTION, COMPILE_WARNINGS, ListenerRegistry
from rekindle.client.overlay import ConsoleDisplay, DiagnosticOverlay, OverlayDisplay, OverlayQueue
from rekindle.client.state import StateCell
from rekindle.diagnostics import CompileFailure, CompileWarning
from rekindle.observability.events import now_ns

if TYPE_CHECKING:
    from rekindle._types import Handler
    from rekindle.config import RekindleConfig
    from rekindle.observability.collector import HotloadCollector


class ClientRuntime:
    """Owns the client's reload state, listeners, engine and overlay.

    Args:
        loader: Module loader (``ImportlibLoader`` by default).
        display: Overlay display (``ConsoleDisplay`` by default).
        loop: Event loop reloads and displays run on.  Defaults to the loop
            running when an entry point is called.
        entry: Name the runtime is bound to in ``namespace()``.
        reserved: Namespaces that are never reloaded.
        reserved_prefixes: Namespace prefixes that are never reloaded.
        fallback_delay: Delay before ``after-reload`` without a post-load hook.
        collector: Optional event collector.

    """

    def __init__(
        self,
        *,
        loader: ModuleLoader | None = None,
        display: OverlayDisplay | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        entry: str = "rekindle",
        reserved: Iterable[str] = DEFAULT_RESERVED,
        reserved_prefixes: Sequence[str] = DEFAULT_RESERVED_PREFIXES,
        fallback_delay: float = 0.1,
        collector: HotloadCollector | None = None,
    ) -> None:
        self._loop = loop
        self._entry = entry
        self.state = StateCell()
        self.listeners = ListenerRegistry()
        self.engine = ReloadEngine(
            loader if loader is not None else ImportlibLoader(),
            self.listeners,
            self.state,
            reserved=reserved,
            reserved_prefixes=reserved_prefixes,
            fallback_delay=fallback_delay,
            collector=collector,
        )
        self.overlay = DiagnosticOverlay(
            self.state,
            display if display is not None else ConsoleDisplay(),
            queue=OverlayQueue(loop),
            collector=collector,
        )
        self._dependencies: dict[str, dict[str, Any]] = {}
        self._tasks: set[asyncio.Task[list[str]]] = set()

    @classmethod
    def from_config(cls, config: RekindleConfig, **kwargs: Any) -> ClientRuntime:
        """Build a runtime using the reload settings of ``config``."""
        return cls(
            entry=config.client_entry,
            reserved=config.reserved_modules,
            reserved_prefixes=config.reserved_prefixes,
            fallback_delay=config.reload_fallback_delay,
            **kwargs,
        )

    def namespace(self) -> dict[str, Any]:
        """Globals for evaluating outbound payloads."""
        return {self._entry: self}

    @property
    def dependencies(self) -> dict[str, dict[str, Any]]:
        """The most recent dependency manifest entries, by mangled id."""
        return dict(self._dependencies)

    # ----- host API -----

    def listen(self, key: str, event: str, handler: Handler) -> None:
        self.listeners.listen(key, event, handler)

    def unlisten(self, key: str, event: str) -> bool:
        return self.listeners.unlisten(key, event)

    def after_reloads(self, hook: AfterReloadsHook | None) -> None:
        """Register the runtime's post-load hook (None removes it)."""
        self.engine.set_after_reloads_hook(hook)

    def mark_loaded(self, namespaces: Iterable[str]) -> None:
        self.engine.mark_loaded(namespaces)

    # ----- inbound entry points -----

    def register_dependencies(self, manifest: Mapping[str, Mapping[str, Any]]) -> None:
        """Record a dependency manifest sent ahead of a reload command."""
        for ns, entry in manifest.items():
            self._dependencies[ns] = dict(entry)
        self.engine.set_origins({ns: str(entry.get("origin", "")) for ns, entry in manifest.items()})

    def reload_modules(
        self,
        namespaces: Sequence[str],
        meta: Mapping[str, Mapping[str, object]] | None = None,
    ) -> asyncio.Task[list[str]]:
        """Schedule a reload command on the client loop and return its task."""
        loop = self._loop if self._loop is not None else asyncio.get_running_loop()
        task = loop.create_task(self.engine.reload(list(namespaces), meta or {}))
        self._tasks.add(task)
        task.add_done_callback(self._reload_done)
        return task

    def compile_warnings(self, records: Sequence[Mapping[str, Any]]) -> None:
        """Publish a warnings episode for the overlay."""
        warnings = tuple(CompileWarning.from_record(r) for r in records)
        self.listeners.emit(COMPILE_WARNINGS, {"warnings": [w.to_record() for w in warnings]})
        self.state.begin_episode(now_ns(), warnings=warnings)

    def compile_exception(self, record: Mapping[str, Any]) -> None:
        """Publish an exception episode for the overlay."""
        failure = CompileFailure.from_record(record)
        self.listeners.emit(COMPILE_EXCEPTION, {"exception_data": failure.to_record()})
        self.state.begin_episode(now_ns(), exception=failure)

    async def drain(self) -> None:
        """Wait for in-flight reload commands and queued overlay displays."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self.overlay.queue.join()

    def _reload_done(self, task: asyncio.Task[list[str]]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            cause = f" ({exc.__cause__})" if exc.__cause__ is not None else ""
            print(f"  Reload failed: {exc}{cause}", file=sys.stderr)
