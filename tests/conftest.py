"""Shared test fixtures for rekindle."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any

import pytest

from rekindle.build.units import SourceUnit
from rekindle.config import RekindleConfig
from rekindle.diagnostics import CompileFailure, CompileWarning


def make_unit(unit_id: str, *requires: str, mtime: float = 1.0, **kwargs: Any) -> SourceUnit:
    """Create a compiled unit with an origin derived from its id."""
    return SourceUnit(
        id=unit_id,
        requires=frozenset(requires),
        origin=f"/project/src/{unit_id.replace('.', '/')}.py",
        last_modified=mtime,
        **kwargs,
    )


class FakeCompiler:
    """Scripted compiler: reports ``warnings``, raises ``error``, else emits ``units``."""

    def __init__(self, units: Iterable[SourceUnit]) -> None:
        self.units_list = list(units)
        self.warnings: list[tuple[str, Mapping[str, Any], Any]] = []
        self.error: Exception | None = None
        self.builds = 0

    def build(self, targets: Any, options: Mapping[str, Any], env: dict[str, Any]) -> None:
        self.builds += 1
        for kind, location, detail in self.warnings:
            for handler in options.get("warning_handlers", ()):
                handler(kind, location, detail)
        if self.error is not None:
            raise self.error
        env["units"] = list(self.units_list)

    def units(self, env: dict[str, Any]) -> list[SourceUnit]:
        return env.get("units", [])

    def touch(self, unit_id: str, mtime: float) -> None:
        self.units_list = [
            replace(u, last_modified=mtime) if u.id == unit_id else u
            for u in self.units_list
        ]


class RecordingChannel:
    """Evaluation channel that records payloads instead of evaluating them."""

    def __init__(self) -> None:
        self.payloads: list[str] = []
        self.fail: Exception | None = None

    def evaluate(self, source: str) -> Any:
        if self.fail is not None:
            raise self.fail
        self.payloads.append(source)
        return None

    def calls(self, function: str) -> list[str]:
        return [p for p in self.payloads if f".{function}(" in p]


class RecordingLoader:
    """Module loader that records requires; namespaces in ``failing`` raise."""

    def __init__(self, failing: Iterable[str] = ()) -> None:
        self.required: list[tuple[str, str | None]] = []
        self.failing = set(failing)

    def require(self, namespace: str, origin: str | None = None) -> None:
        if namespace in self.failing:
            msg = f"boom in {namespace}"
            raise RuntimeError(msg)
        self.required.append((namespace, origin))

    @property
    def namespaces(self) -> list[str]:
        return [ns for ns, _ in self.required]


class RecordingDisplay:
    """Overlay display that logs start/end of each call, optionally slowly."""

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.log: list[tuple[str, str]] = []

    async def _show(self, kind: str, detail: str) -> None:
        self.log.append(("start", f"{kind}:{detail}"))
        if self.delay:
            await asyncio.sleep(self.delay)
        self.log.append(("end", f"{kind}:{detail}"))

    async def show_warning(self, warning: CompileWarning) -> None:
        await self._show("warning", warning.message)

    async def append_warning(self, warning: CompileWarning) -> None:
        await self._show("append", warning.message)

    async def show_exception(self, failure: CompileFailure) -> None:
        await self._show("exception", failure.message)

    async def flash_success(self) -> None:
        await self._show("success", "")

    @property
    def shown(self) -> list[str]:
        return [entry for phase, entry in self.log if phase == "end"]


@pytest.fixture
def config(tmp_path: Path) -> RekindleConfig:
    """A RekindleConfig rooted at a temp directory with no fallback delay."""
    return RekindleConfig(root=tmp_path, reload_fallback_delay=0.0)


@pytest.fixture
def chain_units() -> list[SourceUnit]:
    """A requires B, B requires C."""
    return [make_unit("app.c"), make_unit("app.b", "app.c"), make_unit("app.a", "app.b")]
