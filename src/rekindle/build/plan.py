"""Reload plan — the ordered module list sent to the client."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from rekindle.build.units import munge

if TYPE_CHECKING:
    from rekindle.build.graph import DependencyGraph


@dataclass(frozen=True, slots=True)
class Eligibility:
    """Per-module reload flags.

    Attributes:
        always_reload: Reload even if the client has not loaded the module.
        never_reload: Never reload the module in the client.

    """

    always_reload: bool = False
    never_reload: bool = False

    def to_record(self) -> dict[str, bool]:
        return {"always_reload": self.always_reload, "never_reload": self.never_reload}

    @classmethod
    def from_record(cls, record: Mapping[str, object] | None) -> Eligibility:
        if not record:
            return cls()
        return cls(
            always_reload=bool(record.get("always_reload", False)),
            never_reload=bool(record.get("never_reload", False)),
        )


@dataclass(frozen=True, slots=True)
class ReloadPlan:
    """Deduplicated, ordered module ids with their eligibility flags."""

    modules: tuple[str, ...] = ()
    eligibility: Mapping[str, Eligibility] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "modules", tuple(dict.fromkeys(self.modules)))

    def __bool__(self) -> bool:
        return bool(self.modules)

    def __len__(self) -> int:
        return len(self.modules)

    def __iter__(self) -> Iterator[str]:
        return iter(self.modules)

    def flags(self, module_id: str) -> Eligibility:
        return self.eligibility.get(module_id, Eligibility())

    @classmethod
    def from_graph(cls, graph: DependencyGraph, module_ids: Iterable[str]) -> ReloadPlan:
        """Attach each unit's eligibility flags to an ordered id list."""
        ids = tuple(dict.fromkeys(module_ids))
        eligibility: dict[str, Eligibility] = {}
        for module_id in ids:
            if module_id not in graph:
                continue
            unit = graph.unit(module_id)
            if unit.always_reload or unit.never_reload:
                eligibility[module_id] = Eligibility(
                    always_reload=unit.always_reload,
                    never_reload=unit.never_reload,
                )
        return cls(modules=ids, eligibility=MappingProxyType(eligibility))

    def wire_arguments(self) -> tuple[list[str], dict[str, dict[str, bool]]]:
        """The two reload-call arguments: mangled ids and their eligibility."""
        names = [munge(m) for m in self.modules]
        meta = {munge(m): self.flags(m).to_record() for m in self.modules}
        return names, meta
