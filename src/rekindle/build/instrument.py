"""Build instrumentation — captures diagnostics per compile cycle.

Wraps the external ``build(targets, options, env)`` operation in a small
state machine::

    IDLE -> STARTED -> FINISHED_CLEAN           -> IDLE
                    -> FINISHED_WITH_WARNINGS   -> IDLE
                    -> FINISHED_WITH_EXCEPTION  -> IDLE

Every transition replaces the frozen ``CompileMetadata`` and notifies
subscribers with ``(old, new)``.  ``clear()`` returns the machine to IDLE
once a subscriber has consumed the terminal metadata.
"""

from __future__ import annotations

import enum
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any, Protocol, TypeAlias

from rekindle.diagnostics import CompileFailure, CompileWarning, extract_excerpt
from rekindle.observability.events import now_ns


class BuildFunction(Protocol):
    """The compiler's build entry point.  Mutates ``env`` or raises."""

    def __call__(self, targets: Any, options: Mapping[str, Any], env: Any) -> Any: ...


class BuildState(enum.Enum):
    IDLE = "idle"
    STARTED = "started"
    FINISHED_CLEAN = "finished-clean"
    FINISHED_WITH_WARNINGS = "finished-with-warnings"
    FINISHED_WITH_EXCEPTION = "finished-with-exception"


@dataclass(frozen=True, slots=True)
class CompileMetadata:
    """Diagnostics of one compile cycle.

    Attributes:
        started: Monotonic ns timestamp the cycle started at.
        finished: Monotonic ns timestamp the cycle ended at, success or not.
        warnings: Warnings in the order the compiler reported them.
        exception: The fatal failure, if the build raised.

    """

    started: int | None = None
    finished: int | None = None
    warnings: tuple[CompileWarning, ...] = ()
    exception: CompileFailure | None = None

    @property
    def is_empty(self) -> bool:
        return self.started is None and self.finished is None

    @property
    def is_clean(self) -> bool:
        """Finished with neither warnings nor an exception."""
        return self.finished is not None and not self.warnings and self.exception is None

    @property
    def state(self) -> BuildState:
        if self.is_empty:
            return BuildState.IDLE
        if self.finished is None:
            return BuildState.STARTED
        if self.exception is not None:
            return BuildState.FINISHED_WITH_EXCEPTION
        if self.warnings:
            return BuildState.FINISHED_WITH_WARNINGS
        return BuildState.FINISHED_CLEAN


MetadataListener: TypeAlias = Callable[[CompileMetadata, CompileMetadata], None]


class BuildInstrument:
    """Runs builds and records their diagnostics as CompileMetadata.

    The compiler reports diagnostics through ``options["warning_handlers"]``;
    the instrument appends its own ``on_diagnostic`` to that list for the
    duration of each build.

    Args:
        build: The compiler's build function.
        excerpt_context: Lines of source captured around each diagnostic.

    """

    def __init__(self, build: BuildFunction, *, excerpt_context: int = 2) -> None:
        self._build = build
        self._excerpt_context = excerpt_context
        self._metadata = CompileMetadata()
        self._listeners: list[MetadataListener] = []

    @property
    def metadata(self) -> CompileMetadata:
        return self._metadata

    @property
    def state(self) -> BuildState:
        return self._metadata.state

    def subscribe(self, listener: MetadataListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: MetadataListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def run(self, targets: Any, options: Mapping[str, Any], env: Any) -> Any:
        """Run one build, moving through STARTED to a terminal state.

        Returns whatever the build returns.  If the build raises, the
        failure is recorded (and subscribers notified) before the exception
        propagates.

        """
        self._set(CompileMetadata(started=now_ns()))
        handlers = [*options.get("warning_handlers", ()), self.on_diagnostic]
        build_options = {**options, "warning_handlers": handlers}
        try:
            result = self._build(targets, build_options, env)
        except Exception as exc:
            failure = CompileFailure.from_exception(exc, context=self._excerpt_context)
            self._set(replace(self._metadata, exception=failure, finished=now_ns()))
            raise
        self._set(replace(self._metadata, finished=now_ns()))
        return result

    def on_diagnostic(self, kind: str, location: Mapping[str, Any] | None, detail: Any) -> None:
        """Diagnostics callback handed to the compiler.

        Args:
            kind: Warning type reported by the compiler (e.g. ``"undeclared-var"``).
            location: ``{file, line, column}``; any key may be missing.
            detail: Message string, or a mapping with a ``message`` key.

        """
        if self._metadata.started is None or self._metadata.finished is not None:
            # Diagnostics outside a build have no cycle to belong to.
            return
        location = location or {}
        if isinstance(detail, Mapping):
            message = str(detail.get("message", kind))
        else:
            message = str(detail) if detail is not None else kind
        file = location.get("file")
        line = int(location.get("line") or 0)
        warning = CompileWarning(
            message=message,
            line=line,
            column=int(location.get("column") or 0),
            file=file,
            excerpt=extract_excerpt(file, line, context=self._excerpt_context),
        )
        self._set(replace(self._metadata, warnings=(*self._metadata.warnings, warning)))

    def clear(self) -> None:
        """Discard the current metadata and return to IDLE."""
        self._set(CompileMetadata())

    def _set(self, metadata: CompileMetadata) -> None:
        old, self._metadata = self._metadata, metadata
        if old == metadata:
            return
        for listener in list(self._listeners):
            listener(old, metadata)
