"""Tests for rekindle.build.watcher — file change detection and categorization."""

from __future__ import annotations

from pathlib import Path

import pytest

from watchfiles import Change

from rekindle.build.watcher import ChangeEvent, SourceWatcher, categorize_change, change_batch
from rekindle.config import RekindleConfig


# ---------------------------------------------------------------------------
# ChangeEvent dataclass tests
# ---------------------------------------------------------------------------


class TestChangeEvent:
    """Verify ChangeEvent is frozen and well-behaved."""

    def test_frozen(self) -> None:
        event = ChangeEvent(path=Path("/tmp/a.py"), kind="modified", category="source")
        with pytest.raises(AttributeError):
            event.kind = "created"  # type: ignore[misc]

    def test_hashable(self) -> None:
        event = ChangeEvent(path=Path("/a.py"), kind="created", category="source")
        assert isinstance(hash(event), int)


# ---------------------------------------------------------------------------
# categorize_change tests
# ---------------------------------------------------------------------------


class TestCategorizeChange:
    """Unit tests for categorize_change()."""

    def test_source_file(self, config: RekindleConfig) -> None:
        path = config.root / "src" / "app" / "core.py"
        assert categorize_change(path, config) == "source"

    def test_config_file(self, config: RekindleConfig) -> None:
        assert categorize_change(config.root / "rekindle.yaml", config) == "config"
        assert categorize_change(config.root / "rekindle.toml", config) == "config"

    def test_nested_config_name_is_source(self, config: RekindleConfig) -> None:
        path = config.root / "src" / "rekindle.yaml"
        assert categorize_change(path, config) == "source"

    def test_outside_sources_ignored(self, config: RekindleConfig) -> None:
        assert categorize_change(config.root / "README.md", config) is None
        assert categorize_change(config.root / "docs" / "a.py", config) is None

    def test_bytecode_cache_ignored(self, config: RekindleConfig) -> None:
        path = config.root / "src" / "app" / "__pycache__" / "core.cpython-312.pyc"
        assert categorize_change(path, config) is None

    def test_source_dir_outside_root(self, tmp_path: Path) -> None:
        root = tmp_path / "project"
        config = RekindleConfig(root=root, source_dirs=("../shared",))
        path = tmp_path / "shared" / "lib.py"
        assert categorize_change(path, config) == "source"

    def test_multiple_source_dirs(self, tmp_path: Path) -> None:
        config = RekindleConfig(root=tmp_path, source_dirs=("src", "lib"))
        assert categorize_change(tmp_path / "lib" / "util.py", config) == "source"


class TestChangeBatch:
    """A watchfiles change set becomes one batch of events."""

    def test_whole_change_set_is_one_batch(self, config: RekindleConfig) -> None:
        src = config.root / "src" / "app"
        raw = {
            (Change.modified, str(src / "b.py")),
            (Change.added, str(src / "a.py")),
            (Change.deleted, str(src / "c.py")),
        }

        batch = change_batch(raw, config)

        assert [e.path.name for e in batch] == ["a.py", "b.py", "c.py"]
        assert [e.kind for e in batch] == ["created", "modified", "deleted"]
        assert all(e.category == "source" for e in batch)

    def test_unwatched_paths_dropped(self, config: RekindleConfig) -> None:
        raw = {
            (Change.modified, str(config.root / "README.md")),
            (Change.modified, str(config.root / "rekindle.yaml")),
        }
        batch = change_batch(raw, config)
        assert [e.category for e in batch] == ["config"]

    def test_empty_when_nothing_watched(self, config: RekindleConfig) -> None:
        raw = {(Change.modified, str(config.root / "docs" / "x.py"))}
        assert change_batch(raw, config) == ()


class TestSourceWatcher:
    def test_not_running_before_start(self, config: RekindleConfig) -> None:
        assert not SourceWatcher(config).is_running

    def test_stop_without_start(self, config: RekindleConfig) -> None:
        watcher = SourceWatcher(config)
        watcher.stop()
        assert not watcher.is_running
