"""Reload collector — records authoring and client events into an EventLog.

Both the session and the client runtime accept an optional collector.
Recording is best effort: a failing log never aborts a reload.
"""

from __future__ import annotations

import sys
from collections.abc import Iterable

from rekindle.observability.events import (
    CompileCycle,
    DiagnosticShown,
    ReloadApplied,
    ReloadDispatched,
    ReloadEvent,
    now_ns,
)
from rekindle.observability.log import EventLog


class HotloadCollector:
    """Records reload events.

    Args:
        log: The EventLog to store events in.

    """

    __slots__ = ("_log",)

    def __init__(self, log: EventLog | None = None) -> None:
        self._log = log if log is not None else EventLog()

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    def record(self, event: ReloadEvent) -> None:
        try:
            self._log.append(event)
        except Exception as exc:
            print(f"  Event log error: {exc}", file=sys.stderr)

    # ----- Authoring side -----

    def record_compile(
        self,
        outcome: str,
        *,
        warnings: int = 0,
        started_ns: int = 0,
        finished_ns: int = 0,
    ) -> None:
        """Record a compile cycle that reached a terminal state."""
        duration_ms = (finished_ns - started_ns) / 1e6 if started_ns and finished_ns else 0.0
        self.record(
            CompileCycle(
                outcome=outcome,  # type: ignore[arg-type]
                warnings=warnings,
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )

    def record_dispatch(
        self,
        kind: str,
        *,
        modules: Iterable[str] = (),
        delivered_dependencies: bool = False,
        duration_ms: float = 0.0,
    ) -> None:
        """Record a payload sent through the evaluation channel."""
        self.record(
            ReloadDispatched(
                kind=kind,  # type: ignore[arg-type]
                modules=tuple(modules),
                delivered_dependencies=delivered_dependencies,
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )

    # ----- Client side -----

    def record_reload(
        self,
        requested: Iterable[str],
        reloaded: Iterable[str],
        *,
        failed: str | None = None,
        duration_ms: float = 0.0,
    ) -> None:
        """Record a reload command applied (or failed) in the client."""
        self.record(
            ReloadApplied(
                requested=tuple(requested),
                reloaded=tuple(reloaded),
                failed=failed,
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )

    def record_display(self, kind: str, episode_ns: int) -> None:
        """Record an overlay display for a reload episode."""
        self.record(
            DiagnosticShown(
                kind=kind,  # type: ignore[arg-type]
                episode_ns=episode_ns,
                timestamp_ns=now_ns(),
            )
        )
