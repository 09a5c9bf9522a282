"""Rekindle configuration.

RekindleConfig is the central configuration object, frozen after creation.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from rekindle._errors import ConfigError


@dataclass(frozen=True, slots=True)
class RekindleConfig:
    """Configuration for a hot-reload session.

    Attributes:
        root: Project root directory.  Always resolved to an absolute path
            on construction.
        source_dirs: Directories (relative to root) holding compiled sources.
            Changes under these re-enter the build.
        targets: Build targets passed through to the compiler.
        build_options: Extra compiler options passed through to ``build()``.
        client_entry: Name the client runtime is bound to inside the
            evaluation namespace; every outbound payload calls through it.
        reserved_modules: Modules the client never reloads.
        reserved_prefixes: Module name prefixes the client never reloads.
        reload_fallback_delay: Seconds the client waits before announcing
            ``after-reload`` when no post-load hook is registered.
        load_warninged_code: Reload even when the compile produced warnings.
        excerpt_context: Lines of source shown around a diagnostic location.
        debounce_ms: Watcher debounce window in milliseconds.

    """

    root: Path = field(default_factory=Path.cwd)
    source_dirs: tuple[str, ...] = ("src",)
    targets: tuple[str, ...] = ()
    build_options: dict[str, Any] = field(default_factory=dict)
    client_entry: str = "rekindle"
    reserved_modules: frozenset[str] = frozenset({"builtins", "sys", "rekindle"})
    reserved_prefixes: tuple[str, ...] = ("rekindle.", "__")
    reload_fallback_delay: float = 0.1
    load_warninged_code: bool = False
    excerpt_context: int = 2
    debounce_ms: int = 300

    def __post_init__(self) -> None:
        if not self.root.is_absolute():
            object.__setattr__(self, "root", self.root.resolve())
        if not self.client_entry.isidentifier():
            msg = f"client_entry must be a Python identifier, got {self.client_entry!r}"
            raise ConfigError(msg)
        if self.reload_fallback_delay < 0:
            msg = "reload_fallback_delay must not be negative"
            raise ConfigError(msg)
        if self.excerpt_context < 0:
            msg = "excerpt_context must not be negative"
            raise ConfigError(msg)

    @property
    def source_paths(self) -> tuple[Path, ...]:
        """Absolute paths of the watched source directories."""
        return tuple(Path(os.path.normpath(self.root / d)) for d in self.source_dirs)
