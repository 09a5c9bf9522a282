"""Client side — applies reload commands and shows compile diagnostics.

Runs on a single asyncio event loop inside the live runtime.  Reload
application and the diagnostic overlay share one ``StateCell`` and are
ordered only by its notifications and the overlay's serial queue.
"""

from rekindle.client.engine import ImportlibLoader, ModuleLoader, ReloadEngine
from rekindle.client.listeners import ListenerRegistry
from rekindle.client.overlay import ConsoleDisplay, DiagnosticOverlay, OverlayDisplay, OverlayQueue
from rekindle.client.runtime import ClientRuntime
from rekindle.client.state import ReloadState, StateCell

__all__ = [
    "ClientRuntime",
    "ConsoleDisplay",
    "DiagnosticOverlay",
    "ImportlibLoader",
    "ListenerRegistry",
    "ModuleLoader",
    "OverlayDisplay",
    "OverlayQueue",
    "ReloadEngine",
    "ReloadState",
    "StateCell",
]
