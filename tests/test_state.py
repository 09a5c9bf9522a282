"""Tests for rekindle.client.state — the observable Reload State cell."""

from __future__ import annotations

import pytest

from rekindle.client.state import ReloadState, StateCell
from rekindle.diagnostics import CompileWarning


class TestReloadState:
    def test_default_is_empty(self) -> None:
        assert ReloadState().is_empty

    def test_episode_not_empty(self) -> None:
        assert not ReloadState(reload_started=1).is_empty

    def test_frozen(self) -> None:
        with pytest.raises(AttributeError):
            ReloadState().reload_started = 5  # type: ignore[misc]


class TestStateCell:
    def test_observers_see_old_and_new(self) -> None:
        cell = StateCell()
        seen: list[tuple[ReloadState, ReloadState]] = []
        cell.subscribe(lambda old, new: seen.append((old, new)))

        cell.begin_episode(3, warnings=(CompileWarning("w"),))

        ((old, new),) = seen
        assert old.is_empty
        assert new.reload_started == 3
        assert new.warnings == (CompileWarning("w"),)

    def test_equal_value_does_not_notify(self) -> None:
        cell = StateCell()
        seen: list[object] = []
        cell.subscribe(lambda old, new: seen.append(new))
        cell.clear()
        assert seen == []

    def test_nested_writes_delivered_in_order_to_everyone(self) -> None:
        cell = StateCell()
        first: list[int | None] = []
        second: list[int | None] = []

        def clearing(old: ReloadState, new: ReloadState) -> None:
            first.append(new.reload_started)
            if new.reload_started is not None:
                cell.clear()

        cell.subscribe(clearing)
        cell.subscribe(lambda old, new: second.append(new.reload_started))

        cell.begin_episode(1)

        assert first == [1, None]
        assert second == [1, None]
        assert cell.value.is_empty

    def test_observer_error_resets_cell(self) -> None:
        cell = StateCell()

        def failing(old: ReloadState, new: ReloadState) -> None:
            raise RuntimeError("observer failed")

        cell.subscribe(failing)
        with pytest.raises(RuntimeError):
            cell.begin_episode(1)

        cell.unsubscribe(failing)
        seen: list[object] = []
        cell.subscribe(lambda old, new: seen.append(new))
        cell.clear()
        assert len(seen) == 1
