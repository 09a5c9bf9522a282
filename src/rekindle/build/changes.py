"""Change detector — diffs modification times across compile cycles.

Keeps a monotonic watermark per unit origin.  Each cycle reports the units
whose modification time moved past their watermark, then advances the
watermark for exactly those units.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from urllib.parse import unquote, urlparse

from rekindle.build.units import SourceUnit


def origin_path(origin: str) -> Path | None:
    """Resolve a unit origin (plain path or ``file:`` URL) to a local path."""
    if not origin:
        return None
    parsed = urlparse(origin)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    if parsed.scheme and len(parsed.scheme) > 1:
        # http:, jar: and friends are not locally resolvable
        return None
    return Path(origin)


class ChangeDetector:
    """Tracks last observed modification times and reports changed units.

    Compiled units report their own ``last_modified``.  Foreign bundles carry
    no timestamp from the compiler, so their origin is stat-ed instead.

    Single-writer: only the session's compile cycle calls into it.

    """

    def __init__(self) -> None:
        self._watermarks: dict[str, float] = {}

    @property
    def watermarks(self) -> dict[str, float]:
        """Snapshot of origin -> last observed modification time."""
        return dict(self._watermarks)

    def modification_time(self, unit: SourceUnit) -> float:
        """Current modification time of ``unit`` (0 when unknown)."""
        if unit.last_modified and not unit.foreign:
            return unit.last_modified
        path = origin_path(unit.origin)
        if path is None:
            return unit.last_modified
        try:
            return path.stat().st_mtime
        except OSError:
            return unit.last_modified

    def modified(self, units: Iterable[SourceUnit]) -> list[SourceUnit]:
        """Return units modified since the last call and advance their watermark.

        Units that did not change keep their previous watermark, so a second
        call without intervening edits returns an empty list.

        """
        changed: list[SourceUnit] = []
        observed: dict[str, float] = {}
        for unit in units:
            key = unit.watermark_key
            mtime = self.modification_time(unit)
            if mtime > self._watermarks.get(key, 0.0):
                changed.append(unit)
                observed[key] = max(mtime, observed.get(key, 0.0))
        self._watermarks.update(observed)
        return changed

    def seed(self, units: Iterable[SourceUnit]) -> None:
        """Record current modification times without reporting anything."""
        for unit in units:
            key = unit.watermark_key
            mtime = self.modification_time(unit)
            if mtime > self._watermarks.get(key, 0.0):
                self._watermarks[key] = mtime

    def forget(self, keys: Iterable[str]) -> None:
        """Drop watermarks, e.g. for units that no longer exist."""
        for key in keys:
            self._watermarks.pop(key, None)
