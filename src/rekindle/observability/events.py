"""Event model for reload observability.

Defines events for both sides of a reload: compile cycles and dispatches on
the authoring side, applied reloads and overlay displays on the client.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass
from typing import Literal, TypeAlias


# ---------------------------------------------------------------------------
# Authoring side
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CompileCycle:
    """A compile cycle reached a terminal state.

    Attributes:
        outcome: Which terminal state the cycle reached.
        warnings: Number of warnings reported during the cycle.
        duration_ms: Time from start to finish in milliseconds.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    outcome: Literal["clean", "warnings", "exception"]
    warnings: int
    duration_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ReloadDispatched:
    """A payload was evaluated through the evaluation channel.

    Attributes:
        kind: What the payload carried.
        modules: Module ids in the reload plan (empty for diagnostics).
        delivered_dependencies: True if the dependency manifest was included.
        duration_ms: Time spent in the evaluation channel.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    kind: Literal["reload", "warnings", "exception"]
    modules: tuple[str, ...]
    delivered_dependencies: bool
    duration_ms: float
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Client side
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ReloadApplied:
    """The client finished applying a reload command.

    Attributes:
        requested: Module ids the command named.
        reloaded: Module ids actually re-required.
        failed: Module id that raised, if the reload failed.
        duration_ms: Time from before-reload to after-reload.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    requested: tuple[str, ...]
    reloaded: tuple[str, ...]
    failed: str | None
    duration_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class DiagnosticShown:
    """The overlay displayed the outcome of a reload episode.

    Attributes:
        kind: What was displayed.
        episode_ns: The episode's reload-started timestamp.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    kind: Literal["warning", "warning-summary", "exception", "success"]
    episode_ns: int
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

ReloadEvent: TypeAlias = CompileCycle | ReloadDispatched | ReloadApplied | DiagnosticShown


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
