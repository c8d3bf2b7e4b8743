"""Exploration report generation -- structured JSON from one run.

Each exploration produces an :class:`ExplorationReport` which is
serialised to JSON by :func:`save_report`.

JSON schema::

    {
        "status": "pass" | "fail" | "partial" | "error",
        "issues": [
            {"severity": "critical", "description": "...",
             "confidence": 0.7, "evidence": ["screenshot-....png"]}
        ],
        "screenshots": [
            {"filename": "screenshot-...-initial-load.png",
             "timestamp": "ISO-8601", "label": "initial-load",
             "blank": false}
        ],
        "timestamp": "ISO-8601",
        "game_url": "https://...",
        "execution_time_seconds": 41.1,
        "metadata": {
            "console_errors": ["[error] ..."],
            "console_warnings": ["[warn] ..."],
            "load_time_ms": 2300,
            "levels_advanced": 1,
            "reached_gameplay": true
        }
    }

Severity levels: ``"critical"``, ``"warning"``, ``"info"``.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

import numpy as np

SEVERITIES = ("critical", "warning", "info")
STATUSES = ("pass", "fail", "partial", "error")


def _json_default(obj: Any) -> Any:
    """Handle numpy types during JSON serialisation."""
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, Path):
        return str(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Issue:
    """One problem found during exploration.

    Attributes
    ----------
    severity : str
        ``"critical"``, ``"warning"``, or ``"info"``.
    description : str
        Human-readable description.
    confidence : float
        ``0``-``1``.
    evidence : list[str]
        Screenshot filenames or log references.
    """

    severity: str
    description: str
    confidence: float = 1.0
    evidence: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.severity not in SEVERITIES:
            raise ValueError(f"Unknown severity {self.severity!r}; expected one of {SEVERITIES}")
        self.confidence = min(max(float(self.confidence), 0.0), 1.0)


@dataclass
class ScreenshotInfo:
    """A captured screenshot.

    ``filename`` is empty when the capture failed.
    """

    filename: str
    timestamp: str = field(default_factory=_now_iso)
    label: Optional[str] = None
    blank: bool = False


@dataclass
class ExplorationReport:
    """Complete report for one exploration run."""

    status: str
    game_url: str
    issues: list[Issue] = field(default_factory=list)
    screenshots: list[ScreenshotInfo] = field(default_factory=list)
    timestamp: str = field(default_factory=_now_iso)
    execution_time_seconds: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def build_report(
    game_url: str,
    screenshots: list[ScreenshotInfo],
    console_errors: list[str],
    console_warnings: list[str],
    execution_time_seconds: float,
    reached_gameplay: bool,
    script_completed: bool,
    levels_advanced: int = 0,
    load_time_ms: Optional[float] = None,
    extra_issues: Optional[list[Issue]] = None,
) -> ExplorationReport:
    """Score a finished exploration with simple rules.

    * console errors: ``fail``;
    * gameplay confirmed and the script ran to the end: ``pass``;
    * otherwise ``partial`` if any screenshot was captured, else
      ``error``.

    Blank screenshots and unconfirmed gameplay add warning issues.

    Returns
    -------
    ExplorationReport
    """
    captured = [s for s in screenshots if s.filename]
    issues: list[Issue] = list(extra_issues or [])

    if console_errors:
        status = "fail"
        issues.append(
            Issue(
                severity="critical",
                description=f"Game logged {len(console_errors)} console error(s)",
                confidence=0.7,
                evidence=console_errors[:5],
            )
        )
    elif reached_gameplay and script_completed:
        status = "pass"
    elif captured:
        status = "partial"
    else:
        status = "error"

    if not reached_gameplay:
        issues.append(
            Issue(
                severity="warning",
                description="Could not confirm that gameplay started",
                confidence=0.6,
            )
        )

    blank = [s.filename for s in captured if s.blank]
    if blank:
        issues.append(
            Issue(
                severity="warning",
                description=f"{len(blank)} screenshot(s) were blank",
                confidence=0.8,
                evidence=blank,
            )
        )

    metadata: dict[str, Any] = {
        "console_errors": list(console_errors),
        "console_warnings": list(console_warnings),
        "levels_advanced": levels_advanced,
        "reached_gameplay": reached_gameplay,
    }
    if load_time_ms is not None:
        metadata["load_time_ms"] = load_time_ms

    return ExplorationReport(
        status=status,
        game_url=game_url,
        issues=issues,
        screenshots=list(screenshots),
        execution_time_seconds=execution_time_seconds,
        metadata=metadata,
    )


def error_report(
    game_url: str,
    message: str,
    screenshots: Optional[list[ScreenshotInfo]] = None,
    console_errors: Optional[list[str]] = None,
    console_warnings: Optional[list[str]] = None,
    execution_time_seconds: float = 0.0,
    load_time_ms: Optional[float] = None,
) -> ExplorationReport:
    """Report for a run that was aborted (timeout, load failure, closed browser)."""
    metadata: dict[str, Any] = {
        "console_errors": list(console_errors or []),
        "console_warnings": list(console_warnings or []),
    }
    if load_time_ms is not None:
        metadata["load_time_ms"] = load_time_ms
    return ExplorationReport(
        status="error",
        game_url=game_url,
        issues=[
            Issue(
                severity="critical",
                description=f"Test execution failed: {message}",
                confidence=1.0,
            )
        ],
        screenshots=list(screenshots or []),
        execution_time_seconds=execution_time_seconds,
        metadata=metadata,
    )


def save_report(
    report: ExplorationReport,
    output_dir: str | Path = "output/reports",
    filename: str | None = None,
) -> Path:
    """Serialise *report* to a JSON file.

    Creates the output directory if it does not exist.

    Parameters
    ----------
    report : ExplorationReport
        Report to write.
    output_dir : str or Path
        Destination directory.
    filename : str, optional
        Output filename.  If ``None``, uses
        ``"report-{host}-{timestamp}.json"``.

    Returns
    -------
    Path
        Path to the written JSON file.
    """
    if filename is None:
        host = urlparse(report.game_url).netloc or "local"
        safe_host = "".join(c if c.isalnum() or c in "-." else "-" for c in host)
        stamp = report.timestamp.replace(":", "-").replace(".", "-")
        filename = f"report-{safe_host}-{stamp}.json"

    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / filename

    with open(out_path, "w", encoding="utf-8") as fh:
        json.dump(report.to_dict(), fh, indent=2, default=_json_default)

    return out_path
