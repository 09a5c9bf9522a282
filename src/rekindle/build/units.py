"""Source units — the compiler's per-module output descriptors.

A SourceUnit is rebuilt from compiler output every compile cycle and never
mutated afterwards.  ``munge`` turns a module identifier into the form the
client runtime addresses it by.
"""

from __future__ import annotations

import keyword
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class SourceUnit:
    """A compiled module as reported by the compiler.

    Attributes:
        id: Stable module identifier (dotted, e.g. ``app.core``).
        provides: Identifiers this unit exports besides its own id.
        requires: Identifiers this unit depends on.  Each may name a unit id
            or anything another unit provides.
        origin: Source path or URL the unit was compiled from.
        last_modified: Modification time of the source (0 when unknown).
        foreign: True for externally declared dependency bundles, which are
            identified by a resolvable origin rather than compiled source.
        always_reload: Reload even if the client has not loaded it yet.
        never_reload: Never reload in the client.

    """

    id: str
    provides: frozenset[str] = field(default_factory=frozenset)
    requires: frozenset[str] = field(default_factory=frozenset)
    origin: str = ""
    last_modified: float = 0.0
    foreign: bool = False
    always_reload: bool = False
    never_reload: bool = False

    @property
    def watermark_key(self) -> str:
        """Key under which the change detector tracks this unit."""
        return self.origin or self.id

    @classmethod
    def from_descriptor(cls, descriptor: Mapping[str, Any]) -> SourceUnit:
        """Build a unit from a plain compiler descriptor mapping."""
        return cls(
            id=str(descriptor["id"]),
            provides=frozenset(descriptor.get("provides", ())),
            requires=frozenset(descriptor.get("requires", ())),
            origin=str(descriptor.get("origin", "")),
            last_modified=float(descriptor.get("last_modified", 0.0)),
            foreign=bool(descriptor.get("foreign", False)),
            always_reload=bool(descriptor.get("always_reload", False)),
            never_reload=bool(descriptor.get("never_reload", False)),
        )


def units_from_descriptors(descriptors: Iterable[SourceUnit | Mapping[str, Any]]) -> list[SourceUnit]:
    """Normalize compiler output into SourceUnit objects, preserving order."""
    return [
        d if isinstance(d, SourceUnit) else SourceUnit.from_descriptor(d)
        for d in descriptors
    ]


_CHAR_ESCAPES = {
    "-": "_",
    "?": "_QMARK_",
    "!": "_BANG_",
    "*": "_STAR_",
    "+": "_PLUS_",
    ">": "_GT_",
    "<": "_LT_",
    "=": "_EQ_",
    "/": "_SLASH_",
    "'": "_SINGLEQUOTE_",
}


def munge(module_id: str) -> str:
    """Return the client-side name for ``module_id``.

    Each dotted segment becomes a valid Python identifier: punctuation is
    escaped, reserved words get a trailing underscore and a leading digit is
    prefixed with an underscore.

    """
    segments = []
    for segment in module_id.split("."):
        munged = "".join(_CHAR_ESCAPES.get(ch, ch) for ch in segment)
        if munged and munged[0].isdigit():
            munged = "_" + munged
        if keyword.iskeyword(munged):
            munged += "_"
        segments.append(munged)
    return ".".join(segments)
