"""Client reload engine — re-executes modules named by a reload command.

Applies one reload command in strict order:

1. ``before-reload`` with every requested namespace
2. re-require each eligible namespace, in command order
3. wait for the runtime's post-load hook (or a short fallback delay),
   then ``after-reload`` with the namespaces actually reloaded
4. clear the Reload State, whether or not the steps above succeeded

Re-executed module bodies run their top-level effects again.  Callers must
accept that; nothing here tries to undo or deduplicate them.
"""

from __future__ import annotations

import asyncio
import importlib
import importlib.util
import sys
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from types import ModuleType
from typing import TYPE_CHECKING, Any, Protocol, TypeAlias

from rekindle._errors import ReloadExecutionError
from rekindle.build.changes import origin_path
from rekindle.build.plan import Eligibility
from rekindle.client.listeners import AFTER_RELOAD, BEFORE_RELOAD
from rekindle.observability.events import now_ns

if TYPE_CHECKING:
    from rekindle.client.listeners import ListenerRegistry
    from rekindle.client.state import StateCell
    from rekindle.observability.collector import HotloadCollector

DEFAULT_RESERVED: frozenset[str] = frozenset({"builtins", "sys", "rekindle"})
DEFAULT_RESERVED_PREFIXES: tuple[str, ...] = ("rekindle.", "__")

# after_reloads(callback): the runtime calls ``callback`` once its own
# post-load work is done.
AfterReloadsHook: TypeAlias = Callable[[Callable[[], None]], None]


class ModuleLoader(Protocol):
    """Loads or re-executes a module in the client runtime."""

    def require(self, namespace: str, origin: str | None = None) -> Any: ...


class ImportlibLoader:
    """Default loader for a Python client runtime.

    A namespace with a registered origin file is executed from that file,
    into the existing module object when it is already loaded.  Without an
    origin the normal import system is used: ``importlib.reload`` for loaded
    modules, ``importlib.import_module`` otherwise.

    """

    def require(self, namespace: str, origin: str | None = None) -> ModuleType:
        module = sys.modules.get(namespace)
        path = origin_path(origin) if origin else None
        spec = importlib.util.spec_from_file_location(namespace, path) if path else None
        if spec is None or spec.loader is None:
            if module is not None:
                return importlib.reload(module)
            return importlib.import_module(namespace)

        if module is not None:
            spec.loader.exec_module(module)
            return module
        module = importlib.util.module_from_spec(spec)
        sys.modules[namespace] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(namespace, None)
            raise
        return module


class ReloadEngine:
    """Filters and applies reload commands.

    The engine keeps its own registry of loaded namespaces instead of asking
    the runtime: every successful require adds to it, and the host marks the
    modules it loaded at startup with ``mark_loaded``.

    Args:
        loader: Module loader used to re-require namespaces.
        registry: Listener registry receiving lifecycle events.
        state: The client's Reload State cell.
        reserved: Namespaces that are never reloaded.
        reserved_prefixes: Namespace prefixes that are never reloaded.
        fallback_delay: Seconds to wait before ``after-reload`` when no
            post-load hook is registered.
        collector: Optional event collector.

    """

    def __init__(
        self,
        loader: ModuleLoader,
        registry: ListenerRegistry,
        state: StateCell,
        *,
        reserved: Iterable[str] = DEFAULT_RESERVED,
        reserved_prefixes: Sequence[str] = DEFAULT_RESERVED_PREFIXES,
        fallback_delay: float = 0.1,
        collector: HotloadCollector | None = None,
    ) -> None:
        self._loader = loader
        self._registry = registry
        self._state = state
        self._reserved = frozenset(reserved)
        self._reserved_prefixes = tuple(reserved_prefixes)
        self._fallback_delay = fallback_delay
        self._collector = collector
        self._loaded: set[str] = set()
        self._origins: dict[str, str] = {}
        self._after_reloads: AfterReloadsHook | None = None

    @property
    def loaded(self) -> frozenset[str]:
        """Namespaces the engine knows to be loaded."""
        return frozenset(self._loaded)

    def mark_loaded(self, namespaces: Iterable[str]) -> None:
        self._loaded.update(namespaces)

    def set_origins(self, origins: Mapping[str, str]) -> None:
        """Record where namespaces can be loaded from (dependency manifest)."""
        self._origins.update({ns: origin for ns, origin in origins.items() if origin})

    def set_after_reloads_hook(self, hook: AfterReloadsHook | None) -> None:
        self._after_reloads = hook

    def is_reserved(self, namespace: str) -> bool:
        return namespace in self._reserved or namespace.startswith(self._reserved_prefixes)

    def is_eligible(self, namespace: str, flags: Eligibility) -> bool:
        if self.is_reserved(namespace) or flags.never_reload:
            return False
        return namespace in self._loaded or flags.always_reload

    def eligible(
        self, namespaces: Sequence[str], meta: Mapping[str, Mapping[str, object]]
    ) -> list[str]:
        """The requested namespaces that will actually be re-required, in order."""
        return [
            ns for ns in dict.fromkeys(namespaces)
            if self.is_eligible(ns, Eligibility.from_record(meta.get(ns)))
        ]

    async def reload(
        self,
        namespaces: Sequence[str],
        meta: Mapping[str, Mapping[str, object]] | None = None,
    ) -> list[str]:
        """Apply one reload command and return the namespaces reloaded.

        The success episode is stamped with the time the command started, so
        diagnostics that arrive while it waits for the post-load hook are newer.

        Raises ReloadExecutionError, chained to the module's own exception,
        when a namespace fails to load.  Modules after it are not attempted.

        """
        meta = meta or {}
        requested = list(namespaces)
        reloaded: list[str] = []
        failed: str | None = None
        started = now_ns()
        t0 = time.perf_counter()
        try:
            self._registry.emit(BEFORE_RELOAD, {"namespaces": requested})
            for ns in self.eligible(requested, meta):
                try:
                    self._loader.require(ns, self._origins.get(ns))
                except Exception as exc:
                    failed = ns
                    raise ReloadExecutionError(ns) from exc
                self._loaded.add(ns)
                reloaded.append(ns)
            await self._after_load()
            self._state.begin_episode(started)
            self._registry.emit(AFTER_RELOAD, {"reloaded_namespaces": list(reloaded)})
            return reloaded
        finally:
            self._state.clear()
            if self._collector is not None:
                self._collector.record_reload(
                    requested,
                    reloaded,
                    failed=failed,
                    duration_ms=(time.perf_counter() - t0) * 1000,
                )

    async def _after_load(self) -> None:
        """Wait for the post-load hook, or the fallback delay without one."""
        hook = self._after_reloads
        if hook is None:
            await asyncio.sleep(self._fallback_delay)
            return

        loop = asyncio.get_running_loop()
        done: asyncio.Future[None] = loop.create_future()

        def _resume() -> None:
            if not done.done():
                done.set_result(None)

        hook(lambda: loop.call_soon_threadsafe(_resume))
        await done
