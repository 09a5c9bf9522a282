"""Reload state — the client's single mutable cell shared by reload and overlay.

``ReloadState`` is immutable; the ``StateCell`` holding it is the only thing
that changes.  Writers replace the value, every observer is told about the
transition synchronously.  The client runs on one event loop, so no locks
are involved.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeAlias

from rekindle.diagnostics import CompileFailure, CompileWarning


@dataclass(frozen=True, slots=True)
class ReloadState:
    """Outcome of one reload episode.

    Attributes:
        reload_started: Monotonic ns timestamp identifying the episode.
        warnings: Compile warnings of the episode, in compiler order.
        exception: The fatal compile failure, if any.

    """

    reload_started: int | None = None
    warnings: tuple[CompileWarning, ...] = ()
    exception: CompileFailure | None = None

    @property
    def is_empty(self) -> bool:
        return self.reload_started is None and not self.warnings and self.exception is None


StateObserver: TypeAlias = Callable[[ReloadState, ReloadState], None]


class StateCell:
    """Observable holder of the current ReloadState.

    An observer that writes to the cell while being notified does not
    re-enter the other observers: the nested transition is delivered to
    everyone after the current one, so all observers see transitions in the
    same order.

    """

    __slots__ = ("_notifying", "_observers", "_pending", "_value")

    def __init__(self, value: ReloadState | None = None) -> None:
        self._value = value if value is not None else ReloadState()
        self._observers: list[StateObserver] = []
        self._pending: deque[tuple[ReloadState, ReloadState]] = deque()
        self._notifying = False

    @property
    def value(self) -> ReloadState:
        return self._value

    def subscribe(self, observer: StateObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def unsubscribe(self, observer: StateObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def set(self, value: ReloadState) -> None:
        """Replace the state and notify observers if it changed."""
        old, self._value = self._value, value
        if old == value:
            return
        self._pending.append((old, value))
        if self._notifying:
            return
        self._notifying = True
        try:
            while self._pending:
                before, after = self._pending.popleft()
                for observer in list(self._observers):
                    observer(before, after)
        finally:
            self._notifying = False
            self._pending.clear()

    def begin_episode(
        self,
        started: int,
        *,
        warnings: tuple[CompileWarning, ...] = (),
        exception: CompileFailure | None = None,
    ) -> None:
        """Publish a new reload episode."""
        self.set(ReloadState(reload_started=started, warnings=warnings, exception=exception))

    def clear(self) -> None:
        self.set(ReloadState())
