"""Tests for rekindle.build.changes — modification watermark diffing."""

from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path

from rekindle.build.changes import ChangeDetector, origin_path
from rekindle.build.units import SourceUnit

from conftest import make_unit


class TestModified:
    """Tests for ChangeDetector.modified()."""

    def test_first_cycle_reports_everything_with_a_timestamp(self) -> None:
        units = [make_unit("a", mtime=5.0), make_unit("b", mtime=7.0)]
        detector = ChangeDetector()

        assert [u.id for u in detector.modified(units)] == ["a", "b"]

    def test_second_call_without_edits_is_empty(self) -> None:
        units = [make_unit("a", mtime=5.0), make_unit("b", mtime=7.0)]
        detector = ChangeDetector()
        detector.modified(units)

        assert detector.modified(units) == []

    def test_only_newer_units_are_reported(self) -> None:
        a, b = make_unit("a", mtime=5.0), make_unit("b", mtime=7.0)
        detector = ChangeDetector()
        detector.modified([a, b])

        touched = replace(b, last_modified=9.0)
        assert detector.modified([a, touched]) == [touched]
        assert detector.watermarks[a.origin] == 5.0
        assert detector.watermarks[b.origin] == 9.0

    def test_equal_timestamp_is_not_a_change(self) -> None:
        unit = make_unit("a", mtime=5.0)
        detector = ChangeDetector()
        detector.modified([unit])

        assert detector.modified([replace(unit, last_modified=5.0)]) == []

    def test_older_timestamp_does_not_lower_watermark(self) -> None:
        unit = make_unit("a", mtime=5.0)
        detector = ChangeDetector()
        detector.modified([unit])

        assert detector.modified([replace(unit, last_modified=3.0)]) == []
        assert detector.watermarks[unit.origin] == 5.0

    def test_unit_without_time_or_origin_never_reported(self) -> None:
        unit = SourceUnit(id="gen.code")
        assert ChangeDetector().modified([unit]) == []


class TestForeignBundles:
    """Foreign bundles are timed by stat-ing their origin."""

    def test_foreign_bundle_uses_file_mtime(self, tmp_path: Path) -> None:
        bundle = tmp_path / "vendor.js"
        bundle.write_text("// vendor\n")
        os.utime(bundle, (100.0, 100.0))
        unit = SourceUnit(id="vendor", origin=str(bundle), foreign=True)
        detector = ChangeDetector()

        assert detector.modified([unit]) == [unit]
        assert detector.modified([unit]) == []

        os.utime(bundle, (200.0, 200.0))
        assert detector.modified([unit]) == [unit]

    def test_file_url_origin(self, tmp_path: Path) -> None:
        bundle = tmp_path / "lib.py"
        bundle.write_text("x = 1\n")
        unit = SourceUnit(id="lib", origin=bundle.as_uri(), foreign=True)

        assert ChangeDetector().modification_time(unit) == bundle.stat().st_mtime

    def test_missing_origin_falls_back_to_reported_time(self, tmp_path: Path) -> None:
        unit = SourceUnit(
            id="gone", origin=str(tmp_path / "missing.py"), foreign=True, last_modified=4.0
        )
        assert ChangeDetector().modification_time(unit) == 4.0


class TestSeedAndForget:
    def test_seed_suppresses_initial_report(self) -> None:
        units = [make_unit("a", mtime=5.0)]
        detector = ChangeDetector()
        detector.seed(units)

        assert detector.modified(units) == []

    def test_forget_reports_again(self) -> None:
        unit = make_unit("a", mtime=5.0)
        detector = ChangeDetector()
        detector.seed([unit])
        detector.forget([unit.origin])

        assert detector.modified([unit]) == [unit]


class TestOriginPath:
    def test_plain_path(self) -> None:
        assert origin_path("/src/app.py") == Path("/src/app.py")

    def test_remote_url_is_not_local(self) -> None:
        assert origin_path("https://cdn.example.com/lib.js") is None

    def test_empty_origin(self) -> None:
        assert origin_path("") is None
