"""Reload dispatcher — serializes reload plans and diagnostics for the client.

Every outbound payload is Python source evaluated by the client runtime
through an ``EvaluationChannel``.  A reload payload looks like::

    rekindle.register_dependencies({...})          # only when deps changed
    rekindle.reload_modules(['app.views', 'app.core'],
                            {'app.core': {'always_reload': False, ...}})

and a diagnostics payload is a single call to ``compile_warnings`` or
``compile_exception``.  Arguments are encoded as Python literals.
"""

from __future__ import annotations

import sys
import time
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from rekindle._errors import TransportError
from rekindle.build.units import munge

if TYPE_CHECKING:
    from rekindle.build.graph import DependencyGraph
    from rekindle.build.plan import ReloadPlan
    from rekindle.channel import EvaluationChannel
    from rekindle.diagnostics import CompileFailure, CompileWarning
    from rekindle.observability.collector import HotloadCollector

RELOAD_ENTRY = "reload_modules"
WARNINGS_ENTRY = "compile_warnings"
EXCEPTION_ENTRY = "compile_exception"
DEPENDENCIES_ENTRY = "register_dependencies"


def encode(value: Any) -> str:
    """Encode a payload argument as a Python literal.

    Only plain data (str, int, float, bool, None, list, dict) is expected;
    ``repr`` of such values round-trips through ``ast.literal_eval``.

    """
    return repr(value)


def dependency_manifest(graph: DependencyGraph) -> dict[str, dict[str, Any]]:
    """Mangled id -> origin/provides/requires for every unit in the graph."""
    return {
        munge(unit.id): {
            "origin": unit.origin,
            "provides": sorted(munge(p) for p in unit.provides),
            "requires": sorted(munge(r) for r in unit.requires),
            "foreign": unit.foreign,
        }
        for unit in graph.units
    }


class ReloadDispatcher:
    """Sends reload plans and compile diagnostics through an evaluation channel.

    Remembers the requirement mapping of the last successful reload dispatch
    and re-sends the dependency manifest only when that mapping changes.

    Args:
        channel: Anything with ``evaluate(source)``.
        entry: Name the client runtime is bound to in the evaluation namespace.
        collector: Optional event collector.

    """

    def __init__(
        self,
        channel: EvaluationChannel,
        *,
        entry: str = "rekindle",
        collector: HotloadCollector | None = None,
    ) -> None:
        self._channel = channel
        self._entry = entry
        self._collector = collector
        self._sent_requirements: dict[str, frozenset[str]] | None = None

    def reload_payload(self, plan: ReloadPlan, graph: DependencyGraph | None = None) -> str | None:
        """Build the reload payload, or None when there is nothing to send."""
        payload, _ = self._reload_payload(plan, graph)
        return payload

    def dispatch(self, plan: ReloadPlan, graph: DependencyGraph | None = None) -> Any:
        """Evaluate the reload payload for ``plan`` in the client.

        Returns the channel's result, or None if nothing had to be sent.
        Raises TransportError if the channel fails; the failure is not
        retried and the dependency cache keeps its previous value.

        """
        payload, delivered = self._reload_payload(plan, graph)
        if payload is None:
            return None
        result = self._evaluate(payload, kind="reload", modules=plan.modules, delivered=delivered)
        if graph is not None:
            self._sent_requirements = dict(graph.requirement_map())
        return result

    def send_warnings(self, warnings: Sequence[CompileWarning]) -> Any:
        """Send this cycle's warnings to the client overlay."""
        payload = self._call(WARNINGS_ENTRY, [w.to_record() for w in warnings]) + "\n"
        return self._evaluate(payload, kind="warnings")

    def send_exception(self, failure: CompileFailure) -> Any:
        """Send this cycle's fatal failure to the client overlay."""
        payload = self._call(EXCEPTION_ENTRY, failure.to_record()) + "\n"
        return self._evaluate(payload, kind="exception")

    def _reload_payload(
        self, plan: ReloadPlan, graph: DependencyGraph | None
    ) -> tuple[str | None, bool]:
        lines: list[str] = []
        delivered = graph is not None and self._requirements_changed(graph)
        if delivered:
            lines.append(self._call(DEPENDENCIES_ENTRY, dependency_manifest(graph)))  # type: ignore[arg-type]
        if plan:
            names, meta = plan.wire_arguments()
            lines.append(self._call(RELOAD_ENTRY, names, meta))
        if not lines:
            return None, False
        return "\n".join(lines) + "\n", delivered

    def _requirements_changed(self, graph: DependencyGraph) -> bool:
        current: Mapping[str, frozenset[str]] = graph.requirement_map()
        return self._sent_requirements is None or dict(current) != self._sent_requirements

    def _call(self, function: str, *args: Any) -> str:
        return f"{self._entry}.{function}({', '.join(encode(a) for a in args)})"

    def _evaluate(
        self,
        payload: str,
        *,
        kind: str,
        modules: Sequence[str] = (),
        delivered: bool = False,
    ) -> Any:
        t0 = time.perf_counter()
        try:
            result = self._channel.evaluate(payload)
        except Exception as exc:
            print(f"  Transport error ({kind}): {exc}", file=sys.stderr)
            msg = f"evaluating {kind} payload failed: {exc}"
            raise TransportError(msg) from exc
        if self._collector is not None:
            self._collector.record_dispatch(
                kind,
                modules=modules,
                delivered_dependencies=delivered,
                duration_ms=(time.perf_counter() - t0) * 1000,
            )
        return result
