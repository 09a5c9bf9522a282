"""Tests for rekindle.client.listeners — keyed lifecycle listeners."""

from __future__ import annotations

from typing import Any

import pytest

from rekindle.client.listeners import (
    AFTER_RELOAD,
    BEFORE_RELOAD,
    COMPILE_WARNINGS,
    ListenerRegistry,
)


class TestListen:
    def test_emit_delivers_detail(self) -> None:
        registry = ListenerRegistry()
        received: list[Any] = []
        registry.listen("app.core", AFTER_RELOAD, received.append)

        assert registry.emit(AFTER_RELOAD, {"reloaded_namespaces": ["app.core"]}) == 1
        assert received == [{"reloaded_namespaces": ["app.core"]}]

    def test_reregistering_replaces_handler(self) -> None:
        registry = ListenerRegistry()
        calls: list[str] = []
        registry.listen("app.core", BEFORE_RELOAD, lambda d: calls.append("old"))
        registry.listen("app.core", BEFORE_RELOAD, lambda d: calls.append("new"))

        registry.emit(BEFORE_RELOAD, {"namespaces": []})

        assert calls == ["new"]
        assert len(registry) == 1

    def test_same_key_different_events(self) -> None:
        registry = ListenerRegistry()
        registry.listen("app.core", BEFORE_RELOAD, lambda d: None)
        registry.listen("app.core", AFTER_RELOAD, lambda d: None)
        assert len(registry) == 2
        assert registry.emit(COMPILE_WARNINGS, {"warnings": []}) == 0

    def test_unknown_event_rejected(self) -> None:
        with pytest.raises(ValueError, match="unknown event"):
            ListenerRegistry().listen("k", "on-reload", lambda d: None)


class TestUnlisten:
    def test_unlisten(self) -> None:
        registry = ListenerRegistry()
        registry.listen("k", AFTER_RELOAD, lambda d: None)
        assert registry.unlisten("k", AFTER_RELOAD) is True
        assert registry.unlisten("k", AFTER_RELOAD) is False
        assert registry.handlers(AFTER_RELOAD) == []

    def test_unlisten_all(self) -> None:
        registry = ListenerRegistry()
        registry.listen("k", AFTER_RELOAD, lambda d: None)
        registry.listen("k", BEFORE_RELOAD, lambda d: None)
        registry.listen("other", BEFORE_RELOAD, lambda d: None)

        assert registry.unlisten_all("k") == 2
        assert len(registry) == 1


class TestEmitErrors:
    def test_failing_handler_does_not_stop_others(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        registry = ListenerRegistry()
        received: list[Any] = []

        def failing(detail: Any) -> None:
            raise RuntimeError("handler broke")

        registry.listen("a", AFTER_RELOAD, failing)
        registry.listen("b", AFTER_RELOAD, received.append)

        assert registry.emit(AFTER_RELOAD, {"reloaded_namespaces": []}) == 1
        assert received == [{"reloaded_namespaces": []}]
        assert "Listener error (after-reload): handler broke" in capsys.readouterr().err
