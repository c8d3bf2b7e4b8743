"""Tests for the reporting module (src.reporting.report).

Covers:
- Issue validation
- build_report status rules and issues
- error_report
- save_report (JSON I/O, numpy values)
"""

from __future__ import annotations

import json

import numpy as np
import pytest

from src.reporting.report import (
    ExplorationReport,
    Issue,
    ScreenshotInfo,
    build_report,
    error_report,
    save_report,
)

_URL = "https://games.example.com/snake"


# ── Helpers ──────────────────────────────────────────────────────────


def _shot(name: str = "screenshot-1-initial-load.png", blank: bool = False) -> ScreenshotInfo:
    return ScreenshotInfo(filename=name, label="initial-load", blank=blank)


def _report(**kwargs) -> ExplorationReport:
    params = dict(
        game_url=_URL,
        screenshots=[_shot()],
        console_errors=[],
        console_warnings=[],
        execution_time_seconds=12.5,
        reached_gameplay=True,
        script_completed=True,
    )
    params.update(kwargs)
    return build_report(**params)


# ── Issue ────────────────────────────────────────────────────────────


class TestIssue:
    def test_unknown_severity(self):
        with pytest.raises(ValueError, match="severity"):
            Issue(severity="fatal", description="x")

    def test_confidence_clamped(self):
        assert Issue("info", "x", confidence=3).confidence == 1.0
        assert Issue("info", "x", confidence=-1).confidence == 0.0


# ── build_report ─────────────────────────────────────────────────────


class TestBuildReport:
    def test_pass(self):
        report = _report()
        assert report.status == "pass"
        assert report.issues == []
        assert report.metadata["reached_gameplay"] is True

    def test_console_errors_fail(self):
        report = _report(console_errors=["[error] boom"])
        assert report.status == "fail"
        assert report.issues[0].severity == "critical"
        assert report.issues[0].evidence == ["[error] boom"]
        assert report.metadata["console_errors"] == ["[error] boom"]

    def test_incomplete_script_is_partial(self):
        assert _report(script_completed=False).status == "partial"

    def test_no_gameplay_is_partial_with_warning(self):
        report = _report(reached_gameplay=False)
        assert report.status == "partial"
        assert [i.severity for i in report.issues] == ["warning"]

    def test_no_screenshots_is_error(self):
        report = _report(reached_gameplay=False, screenshots=[ScreenshotInfo(filename="")])
        assert report.status == "error"

    def test_blank_screenshots_warned(self):
        report = _report(screenshots=[_shot("a.png", blank=True), _shot("b.png")])
        assert report.status == "pass"
        assert report.issues[0].evidence == ["a.png"]

    def test_metadata(self):
        report = _report(levels_advanced=2, load_time_ms=850.0, console_warnings=["[warn] w"])
        assert report.metadata == {
            "console_errors": [],
            "console_warnings": ["[warn] w"],
            "levels_advanced": 2,
            "reached_gameplay": True,
            "load_time_ms": 850.0,
        }


class TestErrorReport:
    def test_error_report(self):
        report = error_report(_URL, "Action timeout exceeded (20s)", screenshots=[_shot()])
        assert report.status == "error"
        assert report.issues[0].description == (
            "Test execution failed: Action timeout exceeded (20s)"
        )
        assert len(report.screenshots) == 1


# ── save_report ──────────────────────────────────────────────────────


class TestSaveReport:
    def test_round_trip(self, tmp_path):
        report = _report()
        path = save_report(report, tmp_path)
        assert path.parent == tmp_path
        assert path.name.startswith("report-games.example.com-")

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["status"] == "pass"
        assert data["game_url"] == _URL
        assert data["screenshots"][0]["label"] == "initial-load"

    def test_numpy_values(self, tmp_path):
        report = _report(levels_advanced=np.int64(2), load_time_ms=np.float32(1.5))
        path = save_report(report, tmp_path, filename="r.json")
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["metadata"]["levels_advanced"] == 2
        assert data["metadata"]["load_time_ms"] == 1.5

    def test_creates_directory(self, tmp_path):
        out = tmp_path / "nested" / "reports"
        assert save_report(_report(), out).exists()
