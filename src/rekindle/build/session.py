"""Hot-reload session — ties compile, change detection and dispatch together.

Orchestrates one compile cycle at a time:
    1. ``BuildInstrument`` runs the compiler and records diagnostics
    2. On a terminal state, warnings or the exception go to the client overlay
    3. On a clean finish, ``ChangeDetector`` diffs modification times
    4. ``DependencyGraph.resolve`` turns changed units into a reload plan
    5. ``ReloadDispatcher`` evaluates the plan in the client

The session is the single writer of the graph, watermark and plan state;
compiles never overlap.
"""

from __future__ import annotations

import sys
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, Protocol

from rekindle._errors import TransportError
from rekindle.build.changes import ChangeDetector
from rekindle.build.dispatcher import ReloadDispatcher
from rekindle.build.graph import DependencyGraph
from rekindle.build.instrument import BuildInstrument, BuildState, CompileMetadata
from rekindle.build.plan import ReloadPlan
from rekindle.build.units import SourceUnit, units_from_descriptors

if TYPE_CHECKING:
    from rekindle.build.watcher import SourceWatcher
    from rekindle.channel import EvaluationChannel
    from rekindle.config import RekindleConfig
    from rekindle.observability.collector import HotloadCollector


class Compiler(Protocol):
    """What the session needs from a compiler."""

    def build(self, targets: Any, options: Mapping[str, Any], env: Any) -> Any:
        """Compile ``targets`` into ``env``; report warnings through
        ``options["warning_handlers"]``; raise on fatal errors."""
        ...

    def units(self, env: Any) -> Iterable[SourceUnit | Mapping[str, Any]]:
        """The compiled units in ``env``, in dependency order."""
        ...


_OUTCOMES = {
    BuildState.FINISHED_CLEAN: "clean",
    BuildState.FINISHED_WITH_WARNINGS: "warnings",
    BuildState.FINISHED_WITH_EXCEPTION: "exception",
}


class HotloadSession:
    """Runs compile cycles and sends their outcome to a live client.

    The first cycle that finishes without an exception only seeds the change
    detector: the client already runs that code, so nothing is reloaded.

    Args:
        config: Session configuration.
        compiler: The compiler driving the build.
        channel: Evaluation channel to the client runtime.
        env: Compiler environment, mutated by every build.
        collector: Optional event collector.

    """

    def __init__(
        self,
        config: RekindleConfig,
        compiler: Compiler,
        channel: EvaluationChannel,
        *,
        env: Any = None,
        collector: HotloadCollector | None = None,
    ) -> None:
        self._config = config
        self._compiler = compiler
        self._env = env if env is not None else {}
        self._collector = collector
        self._instrument = BuildInstrument(
            compiler.build, excerpt_context=config.excerpt_context
        )
        self._instrument.subscribe(self._on_metadata)
        self._detector = ChangeDetector()
        self._dispatcher = ReloadDispatcher(
            channel, entry=config.client_entry, collector=collector
        )
        self._seeded = False
        self._last_plan = ReloadPlan()
        self._last_outcome = CompileMetadata()

    @property
    def instrument(self) -> BuildInstrument:
        return self._instrument

    @property
    def detector(self) -> ChangeDetector:
        return self._detector

    @property
    def dispatcher(self) -> ReloadDispatcher:
        return self._dispatcher

    @property
    def last_plan(self) -> ReloadPlan:
        """Plan computed by the most recent cycle (empty if reload was skipped)."""
        return self._last_plan

    def compile(self) -> CompileMetadata:
        """Run one compile cycle and return its terminal metadata.

        A failing build is reported to the client as an exception diagnostic
        and does not propagate.  A TransportError does.

        """
        self._last_plan = ReloadPlan()
        self._last_outcome = CompileMetadata()
        try:
            self._instrument.run(self._config.targets, self._config.build_options, self._env)
        except TransportError:
            raise
        except Exception as exc:
            print(f"  Compile failed: {exc}", file=sys.stderr)
        return self._last_outcome

    async def watch(self, watcher: SourceWatcher | None = None) -> None:
        """Compile once, then recompile once per batch of source changes until cancelled."""
        from rekindle.build.watcher import SourceWatcher

        watcher = watcher if watcher is not None else SourceWatcher(self._config)
        watcher.start()
        try:
            self._compile_logged()
            async for batch in watcher.changes():
                for event in batch:
                    if event.category == "config":
                        print(
                            f"  Config changed: {event.path.name} (restart to apply)",
                            file=sys.stderr,
                        )
                if any(event.category == "source" for event in batch):
                    self._compile_logged()
        finally:
            watcher.stop()

    def _compile_logged(self) -> None:
        try:
            self.compile()
        except Exception as exc:
            print(f"  Reload error: {exc}", file=sys.stderr)

    # ----- build watcher -----

    def _on_metadata(self, old: CompileMetadata, new: CompileMetadata) -> None:
        """React to a terminal compile state exactly once, then clear it."""
        if new == old or new.is_empty or new.finished is None:
            return
        self._last_outcome = new
        try:
            self._react(new)
        finally:
            self._instrument.clear()

    def _react(self, metadata: CompileMetadata) -> None:
        if self._collector is not None:
            self._collector.record_compile(
                _OUTCOMES[metadata.state],
                warnings=len(metadata.warnings),
                started_ns=metadata.started or 0,
                finished_ns=metadata.finished or 0,
            )

        if metadata.exception is not None:
            self._dispatcher.send_exception(metadata.exception)
            return

        units = units_from_descriptors(self._compiler.units(self._env))
        if not self._seeded:
            self._detector.seed(units)
            self._seeded = True
            if metadata.warnings:
                self._dispatcher.send_warnings(metadata.warnings)
            return

        if metadata.warnings:
            self._dispatcher.send_warnings(metadata.warnings)
            if not self._config.load_warninged_code:
                # Changes stay pending until a clean cycle picks them up.
                return

        self._reload_changed(units)

    def _reload_changed(self, units: list[SourceUnit]) -> None:
        graph = DependencyGraph(units)
        changed = self._detector.modified(units)
        plan = ReloadPlan.from_graph(graph, graph.resolve(u.id for u in changed))
        self._last_plan = plan
        if plan:
            self._dispatcher.dispatch(plan, graph)
