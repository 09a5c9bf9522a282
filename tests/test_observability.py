"""Tests for rekindle.observability — reload event recording."""

import threading

from rekindle.observability.collector import HotloadCollector
from rekindle.observability.events import (
    CompileCycle,
    DiagnosticShown,
    ReloadApplied,
    ReloadDispatched,
    now_ns,
)
from rekindle.observability.log import EventLog


def _applied(*modules: str, ts: int = 0) -> ReloadApplied:
    return ReloadApplied(
        requested=modules, reloaded=modules, failed=None,
        duration_ms=0.1, timestamp_ns=ts or now_ns(),
    )


# ---------------------------------------------------------------------------
# EventLog
# ---------------------------------------------------------------------------


class TestEventLog:
    """Tests for the event log store."""

    def test_append_and_len(self) -> None:
        log = EventLog()
        assert len(log) == 0
        log.append(_applied("app.a"))
        assert len(log) == 1

    def test_max_events_enforced(self) -> None:
        log = EventLog(max_events=5)
        for i in range(10):
            log.append(_applied(f"app.m{i}"))
        assert len(log) == 5
        assert log.recent(1)[0].requested == ("app.m9",)

    def test_recent_is_oldest_first(self) -> None:
        log = EventLog()
        for i in range(5):
            log.append(_applied(f"app.m{i}"))
        recent = log.recent(3)
        assert [e.requested for e in recent] == [("app.m2",), ("app.m3",), ("app.m4",)]

    def test_query_by_type(self) -> None:
        log = EventLog()
        log.append(_applied("app.a"))
        log.append(DiagnosticShown(kind="success", episode_ns=1, timestamp_ns=now_ns()))
        results = log.query(event_type=DiagnosticShown)
        assert len(results) == 1
        assert results[0].kind == "success"

    def test_query_by_module(self) -> None:
        log = EventLog()
        log.append(_applied("app.a", "app.b"))
        log.append(_applied("app.c"))
        log.append(ReloadDispatched(
            kind="reload", modules=("app.b",), delivered_dependencies=False,
            duration_ms=0.1, timestamp_ns=now_ns(),
        ))
        assert len(log.query(module="app.b")) == 2
        assert len(log.query(module="app.c")) == 1

    def test_query_since_and_limit(self) -> None:
        log = EventLog()
        for ts in (100, 200, 300, 400):
            log.append(_applied("app.a", ts=ts))
        assert [e.timestamp_ns for e in log.query(since_ns=250)] == [400, 300]
        assert [e.timestamp_ns for e in log.query(limit=1)] == [400]

    def test_clear_and_stats(self) -> None:
        log = EventLog(max_events=10)
        log.append(_applied("app.a"))
        log.append(_applied("app.b"))
        stats = log.stats()
        assert stats["total"] == 2
        assert stats["by_type"] == {"ReloadApplied": 2}
        assert log.clear() == 2
        assert len(log) == 0

    def test_concurrent_appends(self) -> None:
        log = EventLog(max_events=10_000)

        def worker() -> None:
            for _ in range(500):
                log.append(_applied("app.a"))

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(log) == 2000


# ---------------------------------------------------------------------------
# HotloadCollector
# ---------------------------------------------------------------------------


class TestHotloadCollector:
    def test_record_compile_duration(self) -> None:
        collector = HotloadCollector()
        collector.record_compile("warnings", warnings=2, started_ns=1_000_000, finished_ns=3_000_000)
        (event,) = collector.log.query(event_type=CompileCycle)
        assert event.outcome == "warnings"
        assert event.warnings == 2
        assert event.duration_ms == 2.0

    def test_record_compile_without_timestamps(self) -> None:
        collector = HotloadCollector()
        collector.record_compile("clean")
        (event,) = collector.log.query(event_type=CompileCycle)
        assert event.duration_ms == 0.0

    def test_record_reload_failure(self) -> None:
        collector = HotloadCollector()
        collector.record_reload(["app.a", "app.b"], ["app.a"], failed="app.b")
        (event,) = collector.log.query(event_type=ReloadApplied)
        assert event.failed == "app.b"
        assert event.reloaded == ("app.a",)

    def test_failing_log_is_reported_not_raised(self, capsys) -> None:  # type: ignore[no-untyped-def]
        class BrokenLog(EventLog):
            def append(self, event):  # type: ignore[no-untyped-def]
                raise RuntimeError("disk full")

        HotloadCollector(BrokenLog()).record_display("success", 1)
        assert "Event log error: disk full" in capsys.readouterr().err
