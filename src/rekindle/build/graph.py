"""Dependency graph — forward and inverse module dependencies for one cycle.

Answers the question the reload pipeline asks after every clean compile:
"these units changed, which loaded modules have to be re-executed, and in
what order?"

The graph is derived from a single compile cycle's units and is never
updated in place; the session builds a fresh one each cycle so no stale
edges survive a removed require.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from rekindle.build.units import SourceUnit


class DependencyGraph:
    """Forward (requires) and inverse (required-by) mapping over units.

    A requirement may name a unit id or any symbol a unit lists in
    ``provides``; both resolve to the providing unit.  Requirements that
    resolve to no known unit (platform modules, typos) are kept in
    ``requirement_map()`` but produce no edge.

    Args:
        units: The units of one compile cycle, in compiler order.

    """

    def __init__(self, units: Iterable[SourceUnit]) -> None:
        self._units: dict[str, SourceUnit] = {}
        for unit in units:
            self._units[unit.id] = unit

        # symbol -> providing unit id; a unit always provides its own id
        self._providers: dict[str, str] = {}
        for unit in self._units.values():
            for symbol in unit.provides:
                self._providers.setdefault(symbol, unit.id)
        for unit_id in self._units:
            self._providers[unit_id] = unit_id

        self._requires: dict[str, frozenset[str]] = {}
        self._dependents: dict[str, set[str]] = {unit_id: set() for unit_id in self._units}
        for unit in self._units.values():
            resolved = frozenset(
                self._providers[req] for req in unit.requires if req in self._providers
            )
            self._requires[unit.id] = resolved
            for dep in resolved:
                self._dependents[dep].add(unit.id)

    def __contains__(self, unit_id: object) -> bool:
        return unit_id in self._units

    def __len__(self) -> int:
        return len(self._units)

    @property
    def units(self) -> tuple[SourceUnit, ...]:
        """All units in compiler order."""
        return tuple(self._units.values())

    def unit(self, unit_id: str) -> SourceUnit:
        """Return the unit with ``unit_id``; KeyError if unknown."""
        return self._units[unit_id]

    def provider_of(self, symbol: str) -> str | None:
        """Return the id of the unit providing ``symbol``, if any."""
        return self._providers.get(symbol)

    def requires(self, unit_id: str) -> frozenset[str]:
        """Unit ids that ``unit_id`` directly requires."""
        return self._requires.get(unit_id, frozenset())

    def dependents(self, unit_id: str) -> frozenset[str]:
        """Unit ids that directly require ``unit_id``."""
        return frozenset(self._dependents.get(unit_id, ()))

    def requirement_map(self) -> Mapping[str, frozenset[str]]:
        """Full id -> declared requires mapping, unresolved names included.

        The dispatcher compares this between cycles to decide whether the
        client needs a fresh dependency manifest.

        """
        return {unit.id: unit.requires for unit in self._units.values()}

    def resolve(self, changed: Iterable[str]) -> tuple[str, ...]:
        """Return the ordered closure of ``changed`` over the required-by relation.

        Walks dependents breadth first, recording every unit under the
        depth it was discovered at:

        1. Depth 0 holds the changed ids themselves.
        2. A dependent found at depth ``d + 1`` is skipped when it is already
           recorded at a depth greater than ``d + 1``; the deeper record wins.
        3. A unit that is already recorded anywhere is not expanded again,
           so cycles and self-requires terminate.

        Buckets are then emitted deepest first, each shallower bucket minus
        the ids already emitted.  Consumers therefore come before the units
        they require and the changed units come last.

        """
        roots = list(dict.fromkeys(changed))
        if not roots:
            return ()

        memo: dict[str, tuple[str, ...]] = {}

        def dependents_of(unit_id: str) -> tuple[str, ...]:
            if unit_id not in memo:
                memo[unit_id] = tuple(sorted(self._dependents.get(unit_id, ())))
            return memo[unit_id]

        buckets: dict[int, dict[str, None]] = {0: dict.fromkeys(roots)}
        recorded: dict[str, int] = dict.fromkeys(roots, 0)
        frontier = roots
        depth = 0

        while frontier:
            next_depth = depth + 1
            next_frontier: list[str] = []
            for unit_id in frontier:
                for dep in dependents_of(unit_id):
                    seen_at = recorded.get(dep)
                    if seen_at is not None and seen_at > next_depth:
                        continue
                    buckets.setdefault(next_depth, {})[dep] = None
                    if seen_at is None:
                        recorded[dep] = next_depth
                        next_frontier.append(dep)
                    else:
                        recorded[dep] = max(seen_at, next_depth)
            frontier = next_frontier
            depth = next_depth

        ordered: list[str] = []
        emitted: set[str] = set()
        for level in sorted(buckets, reverse=True):
            for unit_id in buckets[level]:
                if unit_id not in emitted:
                    emitted.add(unit_id)
                    ordered.append(unit_id)
        return tuple(ordered)
