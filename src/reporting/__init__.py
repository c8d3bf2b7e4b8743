"""Reporting module -- exploration report generation."""

from .report import (
    ExplorationReport,
    Issue,
    ScreenshotInfo,
    build_report,
    error_report,
    save_report,
)

__all__ = [
    "ExplorationReport",
    "Issue",
    "ScreenshotInfo",
    "build_report",
    "error_report",
    "save_report",
]
