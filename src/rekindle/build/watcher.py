"""Source watcher — re-enters the build when compiled sources change.

Monitors the configured source directories and the project config file.
Debouncing is left to watchfiles; every batch it reports becomes one tuple
of ``ChangeEvent`` objects on an asyncio queue, so a save touching several
files re-enters the build once.
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from watchfiles import Change

from rekindle.config_loader import CONFIG_FILENAMES

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable

    from rekindle.config import RekindleConfig


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A file change detected by the watcher.

    Attributes:
        path: Absolute path to the changed file.
        kind: Type of filesystem change.
        category: ``source`` re-enters the build; ``config`` needs a restart.

    """

    path: Path
    kind: Literal["created", "modified", "deleted"]
    category: Literal["source", "config"]


_CHANGE_KIND_MAP: dict[Change, Literal["created", "modified", "deleted"]] = {
    Change.added: "created",
    Change.modified: "modified",
    Change.deleted: "deleted",
}

_IGNORED_PARTS = frozenset({"__pycache__", ".git", ".mypy_cache", ".pytest_cache"})


def categorize_change(path: Path, config: RekindleConfig) -> str | None:
    """Return ``"source"``, ``"config"`` or None for an unwatched path."""
    if _IGNORED_PARTS.intersection(path.parts):
        return None

    if path.parent == config.root and path.name in CONFIG_FILENAMES:
        return "config"

    for source_path in config.source_paths:
        if source_path in path.parents:
            return "source"
    return None


def change_batch(
    raw_changes: Iterable[tuple[Change, str]], config: RekindleConfig
) -> tuple[ChangeEvent, ...]:
    """Turn one watchfiles change set into ChangeEvents, dropping unwatched paths."""
    batch: list[ChangeEvent] = []
    for change_type, path_str in sorted(raw_changes, key=lambda c: c[1]):
        path = Path(path_str)
        category = categorize_change(path, config)
        if category is None:
            continue
        batch.append(
            ChangeEvent(
                path=path,
                kind=_CHANGE_KIND_MAP.get(change_type, "modified"),
                category=category,  # type: ignore[arg-type]
            )
        )
    return tuple(batch)


class SourceWatcher:
    """Watches source directories in a background thread.

    Events are bridged to an asyncio queue owned by the loop that created
    the watcher, and consumed through ``changes()``.

    """

    def __init__(self, config: RekindleConfig) -> None:
        self._config = config
        self._queue: asyncio.Queue[tuple[ChangeEvent, ...]] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        """Whether the watcher background thread is active."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start watching in a background thread.  Must run inside the event loop."""
        if self.is_running:
            return

        self._loop = asyncio.get_running_loop()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._watch_loop,
            name="rekindle-watcher",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """Signal the watcher to stop and wait for the thread to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None

    async def changes(self) -> AsyncIterator[tuple[ChangeEvent, ...]]:
        """Yield one batch of ChangeEvent objects per debounced change set."""
        while self.is_running or not self._queue.empty():
            try:
                batch = await asyncio.wait_for(self._queue.get(), timeout=0.5)
                yield batch
            except TimeoutError:
                if not self.is_running:
                    break

    def _watch_loop(self) -> None:
        """Background thread: run watchfiles and hand events to the loop."""
        from watchfiles import watch

        root = self._config.root
        watch_paths = [root]
        watch_paths.extend(
            p for p in self._config.source_paths
            if p.exists() and p != root and root not in p.parents
        )

        for raw_changes in watch(
            *watch_paths,
            stop_event=self._stop_event,
            debounce=self._config.debounce_ms,
            step=100,
        ):
            batch = change_batch(raw_changes, self._config)
            if batch and self._loop is not None and not self._loop.is_closed():
                self._loop.call_soon_threadsafe(self._queue.put_nowait, batch)
