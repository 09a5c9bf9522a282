"""Shared type definitions for rekindle."""

from collections.abc import Callable, Mapping
from typing import Any, Literal, TypeAlias

# Listener registry key (owner of a handler)
ListenerKey: TypeAlias = str

# Lifecycle events delivered to client listeners
EventName: TypeAlias = Literal[
    "before-reload",
    "after-reload",
    "compile-warnings",
    "compile-exception",
]

# Client listener callback
Handler: TypeAlias = Callable[[Mapping[str, Any]], Any]
