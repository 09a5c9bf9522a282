"""Reload observability — structured events for both sides of a reload.

Quick Start:
    >>> from rekindle.observability import HotloadCollector, EventLog
    >>> log = EventLog()
    >>> collector = HotloadCollector(log)
    >>> # Pass collector to HotloadSession and ClientRuntime

"""

from rekindle.observability.collector import HotloadCollector
from rekindle.observability.events import (
    CompileCycle,
    DiagnosticShown,
    ReloadApplied,
    ReloadDispatched,
    ReloadEvent,
    now_ns,
)
from rekindle.observability.log import EventLog

__all__ = [
    "CompileCycle",
    "DiagnosticShown",
    "EventLog",
    "HotloadCollector",
    "ReloadApplied",
    "ReloadDispatched",
    "ReloadEvent",
    "now_ns",
]
